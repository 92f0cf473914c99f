"""SQLAlchemy ORM models."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""


class PostRow(Base):
    """A post of any post type."""

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    excerpt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    author_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # naive UTC; SQLite drops the offset
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    modified_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class TermRow(Base):
    """Category or tag."""

    __tablename__ = "terms"
    __table_args__ = (UniqueConstraint("taxonomy", "slug"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    taxonomy: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), nullable=False)


class PostTermRow(Base):
    """Assignment of a term to a post. ``position`` keeps input order."""

    __tablename__ = "post_terms"

    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    term_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("terms.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
