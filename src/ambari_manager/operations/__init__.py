from .ambari import AmbariCommandOperation, ConfigOperation
from .base import Operation, OperationResult
from .local import DownloadOperation, LocalCommandOperation
from .remote import RemoteCommandOperation, UploadOperation
from ..types import TaskType

OPERATION_REGISTRY = {
    TaskType.REMOTE_COMMAND: RemoteCommandOperation,
    TaskType.LOCAL_COMMAND: LocalCommandOperation,
    TaskType.DOWNLOAD: DownloadOperation,
    TaskType.UPLOAD: UploadOperation,
    TaskType.CONFIG: ConfigOperation,
    TaskType.AMBARI_COMMAND: AmbariCommandOperation,
}

__all__ = [
    "Operation",
    "OperationResult",
    "RemoteCommandOperation",
    "LocalCommandOperation",
    "DownloadOperation",
    "UploadOperation",
    "ConfigOperation",
    "AmbariCommandOperation",
    "OPERATION_REGISTRY",
]
