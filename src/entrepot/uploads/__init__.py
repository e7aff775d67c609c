"""Built-in upload sources."""

from entrepot.uploads.file import FileUpload
from entrepot.uploads.memory import MemoryUpload
from entrepot.uploads.stream import StreamUpload
from entrepot.uploads.uri import URIUpload

__all__ = ["FileUpload", "MemoryUpload", "StreamUpload", "URIUpload"]
