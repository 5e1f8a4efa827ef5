from .user import User
from .folder import Folder
from .file import File

__all__ = ["User", "Folder", "File"]
