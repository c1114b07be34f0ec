import logging
import os
import re
from dotenv import dotenv_values

from reqtree.models import AuthConfig, Environment, EnvironmentVariable, HttpRequest, KeyValuePair

logger = logging.getLogger(__name__)

VARIABLE_PATTERN = re.compile(r"\{\{([^}]+)\}\}")


def replace_variables(text: str, variables: dict[str, str]) -> str:
    """
    Replace {{name}} placeholders in text. Names are trimmed before lookup.
    Unknown names are left exactly as written so they stay visible.
    One pass only: placeholders inside substituted values are not expanded.
    """
    if not text or not variables:
        return text

    def replacer(match: re.Match) -> str:
        value = variables.get(match.group(1).strip())
        return match.group(0) if value is None else value

    return VARIABLE_PATTERN.sub(replacer, text)


def variables_to_map(variables: list[EnvironmentVariable]) -> dict[str, str]:
    """Flat {key: value} lookup; a key defined twice keeps its last value."""
    return {v.key: v.value or "" for v in variables if v.key}


def replace_pair_variables(pairs: list[KeyValuePair], variables: dict[str, str]) -> list[KeyValuePair]:
    return [
        p.model_copy(update={
            "key": replace_variables(p.key, variables),
            "value": replace_variables(p.value, variables),
        })
        for p in pairs
    ]


def replace_auth_variables(auth: AuthConfig, variables: dict[str, str]) -> AuthConfig:
    resolved = auth.model_copy(deep=True)
    if resolved.basic is not None:
        resolved.basic.username = replace_variables(resolved.basic.username, variables)
        resolved.basic.password = replace_variables(resolved.basic.password, variables)
    if resolved.bearer is not None:
        resolved.bearer.token = replace_variables(resolved.bearer.token, variables)
    if resolved.api_key is not None:
        resolved.api_key.key = replace_variables(resolved.api_key.key, variables)
        resolved.api_key.value = replace_variables(resolved.api_key.value, variables)
    return resolved


def resolve_request_variables(request: HttpRequest, active_environment: Environment | None) -> HttpRequest:
    """Substitute the active environment's variables into every text field of a request."""
    if active_environment is None or not active_environment.variables:
        return request.model_copy(deep=True)

    variables = variables_to_map(active_environment.variables)
    return request.model_copy(update={
        "url": replace_variables(request.url, variables).strip(),
        "query_params": replace_pair_variables(request.query_params, variables),
        "headers": replace_pair_variables(request.headers, variables),
        "body": request.body.model_copy(update={"content": replace_variables(request.body.content, variables)}),
        "auth": replace_auth_variables(request.auth, variables),
    })


# ── .env files ────────────────────────────────────────────────────────────────

def load_env_file(path: str) -> list[EnvironmentVariable]:
    """Read KEY=value pairs from a .env file. Keys declared without a value are skipped."""
    return [
        EnvironmentVariable(key=k, value=v)
        for k, v in dotenv_values(path).items()
        if k and v is not None
    ]


def with_env_file_variables(environment: Environment) -> Environment:
    """
    Copy of the environment with its linked .env file's variables placed
    before its own, so the environment's own values win on duplicate keys.
    """
    if not environment.env_file_path:
        return environment.model_copy(deep=True)
    path = environment.env_file_path
    file_vars = []
    if not os.path.isfile(path):
        logger.warning("Env file %s linked to environment %s does not exist", path, environment.id)
    else:
        try:
            file_vars = load_env_file(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read env file %s for environment %s: %s", path, environment.id, e)
    merged = environment.model_copy(deep=True)
    merged.variables = [*file_vars, *merged.variables]
    return merged
