from typing import Annotated, Optional

from fastapi import HTTPException
from fastapi.params import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from api import get_logger
from api.models import db
from api.services.profiles import ProfileServiceDep

LOG = get_logger(__name__)

bearer = HTTPBearer(auto_error=False)


def current_user(profile_service: ProfileServiceDep,
                 credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer)]) -> db.Profile:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Authentication required")

    profile = profile_service.by_token(credentials.credentials)
    if profile is None:
        LOG.info("Rejected unknown access token.")
        raise HTTPException(status_code=401, detail="Sign in required")
    return profile


def current_teacher(user: Annotated[db.Profile, Depends(current_user)]) -> db.Profile:
    if user.role != db.Role.teacher:
        raise HTTPException(status_code=403, detail="Only teachers can access this resource")
    return user


CurrentUserDep = Annotated[db.Profile, Depends(current_user)]
CurrentTeacherDep = Annotated[db.Profile, Depends(current_teacher)]
