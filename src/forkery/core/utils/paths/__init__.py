"""Path resolution for project roots and configuration directories."""
from .project import DEFAULT_PROJECT_CONFIG_PRIMARY, get_project_config_dir
from .resolver import PROJECT_ROOT_MARKERS, resolve_project_root
from .user import DEFAULT_USER_CONFIG_PRIMARY, get_user_config_dir

__all__ = [
    "DEFAULT_PROJECT_CONFIG_PRIMARY",
    "DEFAULT_USER_CONFIG_PRIMARY",
    "PROJECT_ROOT_MARKERS",
    "get_project_config_dir",
    "get_user_config_dir",
    "resolve_project_root",
]
