from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None

def upgrade():
    op.create_table(
        "songs",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("artist", sa.String(100), nullable=False),
        sa.Column("album", sa.String(100), nullable=True),
        sa.Column("genre", sa.String(50), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("cover_image_url", sa.Text(), nullable=True),
        sa.Column("play_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("duration >= 1", name="ck_songs_duration"),
    )
    op.create_index("ix_songs_artist", "songs", ["artist"])

    op.create_table(
        "library_entry",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("song_id", sa.Uuid(as_uuid=True), sa.ForeignKey("songs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id", "song_id", name="uq_library_entry_user_song"),
    )
    op.create_index("ix_library_user_added", "library_entry", ["user_id", sa.text("added_at DESC")])
    op.create_index("ix_library_song_added", "library_entry", ["song_id", sa.text("added_at DESC")])
    op.create_index("ix_library_active", "library_entry", ["is_active"])

def downgrade():
    op.drop_index("ix_library_active", table_name="library_entry")
    op.drop_index("ix_library_song_added", table_name="library_entry")
    op.drop_index("ix_library_user_added", table_name="library_entry")
    op.drop_table("library_entry")
    op.drop_index("ix_songs_artist", table_name="songs")
    op.drop_table("songs")
