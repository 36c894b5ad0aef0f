from blogflow.ports.clock import ClockPort
from blogflow.ports.repo import ContentRepoPort, UnitOfWorkPort
from blogflow.ports.tasks import TaskQueuePort
from blogflow.ports.token_store import TokenStorePort

__all__ = [
    "ClockPort",
    "ContentRepoPort",
    "TaskQueuePort",
    "TokenStorePort",
    "UnitOfWorkPort",
]
