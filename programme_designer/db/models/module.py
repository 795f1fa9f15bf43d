import uuid
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from programme_designer.db.base import Base


class ModuleRecord(Base):
    __tablename__ = "modules"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)

    # denormalised from module_setup_json for listing and search
    module_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    module_title: Mapped[str] = mapped_column(String(200), nullable=False)
    study_year: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    module_type: Mapped[str | None] = mapped_column(String(30), nullable=True)

    module_setup_json: Mapped[str] = mapped_column(Text, nullable=False)
    teaching_schedule_json: Mapped[str] = mapped_column(Text, nullable=False)
    coursework_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
