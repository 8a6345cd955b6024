from datetime import datetime

from pydantic import BaseModel, ConfigDict


class WatchStartRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    started_at: datetime
