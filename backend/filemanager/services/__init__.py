"""
File manager services.
"""
from filemanager.services.file_manager import FileManager, get_file_manager

__all__ = [
    "FileManager",
    "get_file_manager",
]
