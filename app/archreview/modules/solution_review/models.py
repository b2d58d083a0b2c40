from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from app.archreview.models import Base

from .sections import SECTION_KEYS
from .transitions import DocumentState


def new_document_id() -> str:
    return uuid.uuid4().hex


class SolutionReview(Base):
    __tablename__ = "solution_reviews"
    __table_args__ = (
        UniqueConstraint("system_code", "version", name="uq_solution_review_system_version"),
        # At most one CURRENT review per system, enforced by the store itself.
        Index(
            "uq_solution_review_current_per_system",
            "system_code",
            unique=True,
            sqlite_where=text("document_state = 'CURRENT'"),
            postgresql_where=text("document_state = 'CURRENT'"),
        ),
        Index("idx_solution_reviews_state", "document_state"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_document_id)

    system_code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # DRAFT -> SUBMITTED -> APPROVED -> CURRENT -> OUTDATED (see transitions.py)
    document_state: Mapped[str] = mapped_column(String(16), nullable=False, default=DocumentState.DRAFT.value)

    # Eight independently nullable sections (JSON). Replace, never mutate in place:
    # plain JSON columns do not track nested changes.
    solution_overview: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    business_capabilities: Mapped[list | None] = mapped_column(JSON, nullable=True)
    data_assets: Mapped[list | None] = mapped_column(JSON, nullable=True)
    system_components: Mapped[list | None] = mapped_column(JSON, nullable=True)
    technology_components: Mapped[list | None] = mapped_column(JSON, nullable=True)
    integration_flows: Mapped[list | None] = mapped_column(JSON, nullable=True)
    enterprise_tools: Mapped[list | None] = mapped_column(JSON, nullable=True)
    process_compliances: Mapped[list | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    created_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    last_modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    last_modified_by: Mapped[str | None] = mapped_column(String(320), nullable=True)

    def get_section(self, section_key: str) -> Any:
        return getattr(self, SECTION_ATTRS[section_key])

    def set_section(self, section_key: str, value: Any) -> None:
        setattr(self, SECTION_ATTRS[section_key], value)

    def sections(self) -> dict[str, Any]:
        return {key: self.get_section(key) for key in SECTION_KEYS}

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "systemCode": self.system_code,
            "version": self.version,
            "documentState": self.document_state,
        }
        out.update(self.sections())
        out.update(
            {
                "createdAt": self.created_at.isoformat() if self.created_at else None,
                "createdBy": self.created_by,
                "lastModifiedAt": self.last_modified_at.isoformat() if self.last_modified_at else None,
                "lastModifiedBy": self.last_modified_by,
            }
        )
        return out


# camelCase section key -> column attribute
SECTION_ATTRS: dict[str, str] = {
    "solutionOverview": "solution_overview",
    "businessCapabilities": "business_capabilities",
    "dataAssets": "data_assets",
    "systemComponents": "system_components",
    "technologyComponents": "technology_components",
    "integrationFlows": "integration_flows",
    "enterpriseTools": "enterprise_tools",
    "processCompliances": "process_compliances",
}
