from sqlalchemy import Boolean, Column, String, DateTime, ForeignKey, Index, Uuid, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from database import Base


class Folder(Base):
    __tablename__ = "folders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    parent_folder_id = Column(Uuid(as_uuid=True), ForeignKey("folders.id"), nullable=True, index=True)
    path = Column(String, nullable=False, index=True)  # Materialized path, e.g. "/My Drive/documents/projects"
    is_root = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships. "children" is derived from parent_folder_id, never stored.
    user = relationship("User", back_populates="folders")
    parent = relationship("Folder", remote_side=[id], backref="children")
    files = relationship("File", back_populates="folder")

    __table_args__ = (
        # Unique folder names per user per parent
        Index('ix_folder_user_parent_name', 'user_id', 'parent_folder_id', 'name', unique=True),
        # Exactly one root folder per user
        Index(
            'ix_folder_user_root',
            'user_id',
            unique=True,
            postgresql_where=text('is_root'),
            sqlite_where=text('is_root = 1'),
        ),
    )

    @property
    def children_ids(self) -> list:
        return [child.id for child in self.children]

    def __repr__(self):
        return f"Folder(id={self.id}, user_id={self.user_id}, name={self.name}, parent_folder_id={self.parent_folder_id}, path={self.path}, is_root={self.is_root})"
