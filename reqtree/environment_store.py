"""
Environments store. Same load / mutate / save discipline as the collections
store, over the environments document.
"""
import logging

from reqtree import db
from reqtree.errors import DuplicateName, NotFound
from reqtree.models import Environment, EnvironmentVariable, EnvironmentsConfig, generate_id, now_iso
from reqtree.variables import with_env_file_variables

logger = logging.getLogger(__name__)


def _find(config: EnvironmentsConfig, env_id: str) -> Environment:
    for env in config.environments:
        if env.id == env_id:
            return env
    raise NotFound(f"Environment with id {env_id} not found")


def _check_name(config: EnvironmentsConfig, name: str, exclude_id: str | None = None) -> None:
    if any(env.name == name and env.id != exclude_id for env in config.environments):
        raise DuplicateName(f'An environment with name "{name}" already exists')


def get_environments(location: str, store=None) -> list[Environment]:
    return db.load_environments_config(location, store).environments


def get_environment(location: str, env_id: str, store=None) -> Environment:
    return _find(db.load_environments_config(location, store), env_id)


def create_environment(location: str, name: str, store=None) -> Environment:
    config = db.load_environments_config(location, store)
    _check_name(config, name)
    now = now_iso()
    env = Environment(name=name, created_at=now, updated_at=now)
    config.environments.append(env)
    db.save_environments_config(location, config, store)
    return env


def update_environment(
    location: str,
    env_id: str,
    name: str,
    variables: list[EnvironmentVariable],
    store=None,
) -> Environment:
    config = db.load_environments_config(location, store)
    env = _find(config, env_id)
    _check_name(config, name, exclude_id=env_id)
    env.name = name
    env.variables = [v.model_copy() for v in variables]
    env.updated_at = now_iso()
    db.save_environments_config(location, config, store)
    return env


def delete_environment(location: str, env_id: str, store=None) -> bool:
    config = db.load_environments_config(location, store)
    remaining = [env for env in config.environments if env.id != env_id]
    if len(remaining) == len(config.environments):
        return False
    config.environments = remaining
    if config.active_environment_id == env_id:
        config.active_environment_id = None
    db.save_environments_config(location, config, store)
    return True


def duplicate_environment(location: str, env_id: str, store=None) -> Environment:
    config = db.load_environments_config(location, store)
    source = _find(config, env_id)
    taken = {env.name for env in config.environments}
    name = f"{source.name} Copy"
    counter = 2
    while name in taken:
        name = f"{source.name} Copy {counter}"
        counter += 1

    now = now_iso()
    duplicate = source.model_copy(
        update={"id": generate_id(), "name": name, "created_at": now, "updated_at": now},
        deep=True,
    )
    config.environments.append(duplicate)
    db.save_environments_config(location, config, store)
    return duplicate


def set_active_environment(location: str, env_id: str | None, store=None) -> None:
    config = db.load_environments_config(location, store)
    if env_id is not None:
        _find(config, env_id)
    config.active_environment_id = env_id
    db.save_environments_config(location, config, store)


def get_active_environment(location: str, store=None) -> Environment | None:
    """The active environment with its linked .env variables folded in, or None."""
    config = db.load_environments_config(location, store)
    if not config.active_environment_id:
        return None
    for env in config.environments:
        if env.id == config.active_environment_id:
            return with_env_file_variables(env)
    logger.warning("Active environment %s no longer exists", config.active_environment_id)
    return None


# ── .env file links ───────────────────────────────────────────────────────────

def link_env_file(location: str, env_id: str, path: str, store=None) -> Environment:
    config = db.load_environments_config(location, store)
    env = _find(config, env_id)
    env.env_file_path = path
    env.updated_at = now_iso()
    db.save_environments_config(location, config, store)
    return env


def unlink_env_file(location: str, env_id: str, store=None) -> Environment:
    config = db.load_environments_config(location, store)
    env = _find(config, env_id)
    env.env_file_path = None
    env.updated_at = now_iso()
    db.save_environments_config(location, config, store)
    return env
