from sqlalchemy import Column, Integer, String, DateTime, JSON

from rentcar.database.init import Base


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    # None for system actions such as the pending-booking expiry sweep
    user_id = Column(Integer, nullable=True)
    action = Column(String(50), nullable=False)
    object_type = Column(String(50), nullable=False)
    object_id = Column(String(50), nullable=False, index=True)
    meta = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=False)
