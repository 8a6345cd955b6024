import uuid
from typing import Annotated, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from api import get_logger
from api.models import db
from api.models.db import DbSession
from common_lib.service import Service

LOG = get_logger(__name__)


class ProfileService(Service):
    """Resolves bearer tokens to profiles. Tokens are issued by the sign-in flow, which lives elsewhere."""

    def __init__(self, session_factory: sessionmaker = DbSession):
        self.session_factory = session_factory

    def by_token(self, token: str) -> Optional[db.Profile]:
        with self.session_factory() as session:
            stmt = (select(db.Profile)
                    .join(db.AccessToken, db.AccessToken.profile_id == db.Profile.id)
                    .where(db.AccessToken.token == token))
            return session.scalar(stmt)

    def get(self, profile_id: uuid.UUID) -> Optional[db.Profile]:
        with self.session_factory() as session:
            return session.get(db.Profile, profile_id)


ProfileServiceDep = Annotated[ProfileService, ProfileService.dep()]
