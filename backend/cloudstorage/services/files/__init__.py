from cloudstorage.services.files.dto import FileDownload, FileOut, FilePage, FileUploadIn
from cloudstorage.services.files.service import FilesService

__all__ = ["FileDownload", "FileOut", "FilePage", "FileUploadIn", "FilesService"]
