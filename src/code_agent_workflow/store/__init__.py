from code_agent_workflow.store.models import FragmentRecord, MessageRecord, ProjectRecord
from code_agent_workflow.store.projects import ProjectRepository
from code_agent_workflow.store.steps import StepRunner
from code_agent_workflow.store.store import Store, utc_now

__all__ = [
    "FragmentRecord",
    "MessageRecord",
    "ProjectRecord",
    "ProjectRepository",
    "StepRunner",
    "Store",
    "utc_now",
]
