import uuid
import sqlalchemy as sa
from sqlalchemy import ForeignKey
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column

Base = declarative_base()


class Song(Base):
    __tablename__ = "songs"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    artist: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    album: Mapped[str | None] = mapped_column(sa.String(100))
    genre: Mapped[str | None] = mapped_column(sa.String(50))
    duration: Mapped[int] = mapped_column(sa.Integer, nullable=False)  # seconds
    cover_image_url: Mapped[str | None] = mapped_column(sa.Text)
    play_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0, server_default=sa.text("0"))

    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
    updated_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False)

    __table_args__ = (
        sa.CheckConstraint("duration >= 1", name="ck_songs_duration"),
        sa.Index("ix_songs_artist", "artist"),
    )

    @property
    def formatted_duration(self) -> str:
        minutes, seconds = divmod(self.duration, 60)
        return f"{minutes}:{seconds:02d}"


class LibraryEntry(Base):
    __tablename__ = "library_entry"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid(as_uuid=True), nullable=False)
    song_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(as_uuid=True), ForeignKey("songs.id", ondelete="CASCADE"), nullable=False
    )

    # refreshed on every inactive -> active transition
    added_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True, server_default=sa.true())

    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
    updated_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False)

    song: Mapped["Song"] = relationship("Song")

    __table_args__ = (
        sa.UniqueConstraint("user_id", "song_id", name="uq_library_entry_user_song"),
        sa.Index("ix_library_user_added", "user_id", sa.text("added_at DESC")),
        sa.Index("ix_library_song_added", "song_id", sa.text("added_at DESC")),
        sa.Index("ix_library_active", "is_active"),
    )
