from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from order_dispatch.database import get_db
from order_dispatch.models.user import User, UserRole
from order_dispatch.core.security import verify_token
from order_dispatch.core.exception import AuthenticationException, PermissionDeniedException
from order_dispatch.repository.delivery_store import DeliveryStore
from order_dispatch.repository.directory import Directory
from order_dispatch.repository.order_store import OrderStore
from order_dispatch.service.delivery_dispatcher import DeliveryDispatcher
from order_dispatch.service.location_tracker import LocationTracker
from order_dispatch.service.order_lifecycle import OrderLifecycle

security = HTTPBearer(auto_error=False)

def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    '''Resolve the authenticated principal from the bearer token'''
    if credentials is None:
        raise AuthenticationException("Access token required")

    payload = verify_token(credentials.credentials)

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationException("Invalid token")

    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise AuthenticationException("Invalid token")

    user = Directory(db).get_user(user_id)
    if not user:
        raise AuthenticationException("User not found")

    if not user.is_active:
        raise AuthenticationException("User account is inactive")

    return user

def require_role(*allowed_roles: UserRole):
    '''Dependency to require specific user roles'''
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise PermissionDeniedException(
                f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
            )
        return current_user
    return role_checker

# Role-specific dependencies
def get_customer(current_user: User = Depends(require_role(UserRole.CUSTOMER))) -> User:
    return current_user

def get_owner(current_user: User = Depends(require_role(UserRole.OWNER))) -> User:
    return current_user

def get_courier(current_user: User = Depends(require_role(UserRole.DELIVERY))) -> User:
    return current_user

def get_admin(current_user: User = Depends(require_role(UserRole.ADMIN))) -> User:
    return current_user

def get_owner_or_admin(current_user: User = Depends(require_role(UserRole.OWNER, UserRole.ADMIN))) -> User:
    return current_user

# Services, wired per request around the request's session
def get_order_lifecycle(db: Session = Depends(get_db)) -> OrderLifecycle:
    return OrderLifecycle(db, OrderStore(db), Directory(db))

def get_dispatcher(db: Session = Depends(get_db)) -> DeliveryDispatcher:
    return DeliveryDispatcher(db, OrderStore(db), DeliveryStore(db), Directory(db))

def get_location_tracker(db: Session = Depends(get_db)) -> LocationTracker:
    return LocationTracker(db, OrderStore(db), DeliveryStore(db))
