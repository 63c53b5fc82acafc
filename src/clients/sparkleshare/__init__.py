from .connection import ConnectionManager
from .items import File, Folder, FolderItem, RootFolder

__all__ = ["ConnectionManager", "File", "Folder", "FolderItem", "RootFolder"]
