from sqlalchemy import Column, String, BigInteger, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from database import Base


class File(Base):
    __tablename__ = "files"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    folder_id = Column(Uuid(as_uuid=True), ForeignKey("folders.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False)
    mime = Column(String, nullable=False)
    storage_key = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="files")
    folder = relationship("Folder", back_populates="files")

    __table_args__ = (
        # Unique file names per user per folder
        Index('ix_file_user_folder_name', 'user_id', 'folder_id', 'name', unique=True),
    )

    def __repr__(self):
        return f"File(id={self.id}, user_id={self.user_id}, name={self.name}, size={self.size}, mime={self.mime}, folder_id={self.folder_id}, created_at={self.created_at}, updated_at={self.updated_at})"
