from __future__ import annotations

import uuid

from sqlalchemy import JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from form_builder.db.session import Base
from form_builder.models.common import TimestampMixin, UUIDMixin


class FormSubmission(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "form_submissions"

    form_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    submitted_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    crm_data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    associated_lead_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    channel: Mapped[str] = mapped_column(String(20), nullable=False, default="public")
