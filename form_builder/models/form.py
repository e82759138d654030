from __future__ import annotations

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from form_builder.db.session import Base
from form_builder.models.common import TimestampMixin, UUIDMixin


class Form(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "forms"

    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)
    purpose: Mapped[str] = mapped_column(String(40), nullable=False, default="general", index=True)
    schema_json: Mapped[list] = mapped_column("schema", JSON, nullable=False, default=list)
    settings: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_by: Mapped[str] = mapped_column(String(200), nullable=False, default="system")
