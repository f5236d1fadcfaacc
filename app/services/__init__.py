"""
Services layer - Business logic goes here.
Keep services focused on one collection each (locations, updates, providers,
flaggedContent, reviews).

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Services raise errors from app.core.exceptions, never HTTPException
- Permission checks belong to the controllers, not the services
"""
