"""
SQLAlchemy database models for Reasonet.

These models represent the connected GitHub installations and repositories,
and the automated review analyses run against their pull requests.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def _enum_column(enum_cls: type[enum.Enum]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        values_callable=lambda x: [e.value for e in x],
    )


class AnalysisStatus(str, enum.Enum):
    """Lifecycle of a single review analysis."""

    PENDING = "PENDING"  # Created on event receipt
    PROCESSING = "PROCESSING"  # Set before any external call
    COMPLETED = "COMPLETED"  # Results persisted
    FAILED = "FAILED"  # Diff fetch or fan-out failed


class AnalysisType(str, enum.Enum):
    """Discriminator for the kind of analysis work."""

    PULL_REQUEST = "PULL_REQUEST"


class ResultType(str, enum.Enum):
    """Kind of finding produced by an analysis collaborator."""

    CODE_QUALITY = "CODE_QUALITY"
    SECURITY = "SECURITY"


class Severity(str, enum.Enum):
    """Severity of a finding."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


class ResultStatus(str, enum.Enum):
    """Resolution state of a finding (changed outside this pipeline)."""

    OPEN = "OPEN"
    FIXED = "FIXED"
    IGNORED = "IGNORED"


class Organization(Base):
    """Tenant organization that owns repositories and is billed for analyses."""

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )  # URL-friendly identifier

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="true", index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    installations: Mapped[list["GitHubInstallation"]] = relationship(
        back_populates="organization"
    )
    repositories: Mapped[list["Repository"]] = relationship(
        back_populates="organization"
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r}, slug={self.slug!r})>"


class GitHubInstallation(Base):
    """A GitHub account that installed the app and granted repository access."""

    __tablename__ = "github_installations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    installation_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )  # GitHub's installation id
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )  # Linked during onboarding, not by webhooks

    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    account_login: Mapped[str] = mapped_column(String(255), nullable=False)
    account_type: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # "User" or "Organization"
    target_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    permissions: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default="{}")
    events: Mapped[list] = mapped_column(JSONB, nullable=False, server_default="[]")
    suspended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    organization: Mapped[Optional["Organization"]] = relationship(
        back_populates="installations"
    )

    def __repr__(self) -> str:
        return (
            f"<GitHubInstallation(installation_id={self.installation_id!r}, "
            f"account_login={self.account_login!r})>"
        )


class Repository(Base):
    """A GitHub repository registered through an installation."""

    __tablename__ = "repositories"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    github_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Weak reference to github_installations.installation_id (no FK); the
    # registry deletes dependents explicitly.
    github_installation_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_private: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="false"
    )
    language: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    clone_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ssh_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    star_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    fork_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    default_branch: Mapped[str] = mapped_column(
        String(255), nullable=False, server_default="main"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    organization: Mapped["Organization"] = relationship(back_populates="repositories")
    analyses: Mapped[list["Analysis"]] = relationship(
        back_populates="repository", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Repository(github_id={self.github_id!r}, full_name={self.full_name!r})>"


class Analysis(Base):
    """One automated review pass over a pull request."""

    __tablename__ = "analyses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    repository_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(512), nullable=False)
    status: Mapped[str] = mapped_column(
        _enum_column(AnalysisStatus),
        nullable=False,
        server_default=AnalysisStatus.PENDING.value,
        index=True,
    )
    type: Mapped[str] = mapped_column(
        _enum_column(AnalysisType),
        nullable=False,
        server_default=AnalysisType.PULL_REQUEST.value,
    )
    pr_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    branch: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    commit: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Append-only audit trail: original payload, diff, gist url, result count,
    # terminal error, status history
    options: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default="{}")

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    repository: Mapped["Repository"] = relationship(back_populates="analyses")
    results: Mapped[list["AnalysisResult"]] = relationship(
        back_populates="analysis", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Analysis(id={self.id}, name={self.name!r}, status={self.status!r})>"


class AnalysisResult(Base):
    """A single finding produced by a quality or security collaborator."""

    __tablename__ = "analysis_results"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    analysis_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("analyses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(_enum_column(ResultType), nullable=False, index=True)
    severity: Mapped[str] = mapped_column(
        _enum_column(Severity), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    line_start: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    line_end: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        _enum_column(ResultStatus),
        nullable=False,
        server_default=ResultStatus.OPEN.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    analysis: Mapped["Analysis"] = relationship(back_populates="results")

    def __repr__(self) -> str:
        return (
            f"<AnalysisResult(id={self.id}, type={self.type!r}, "
            f"severity={self.severity!r})>"
        )
