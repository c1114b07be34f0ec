import base64

from reqtree.models import AuthConfig, HttpRequest, KeyValuePair


def create_empty_auth() -> AuthConfig:
    return AuthConfig(type="none")


def should_inherit_auth(auth: AuthConfig | None) -> bool:
    """A none-typed auth defers to the collection chain unless inheritance was switched off."""
    return auth is None or (auth.type == "none" and not auth.disable_inherit)


def is_auth_config_valid(auth: AuthConfig) -> bool:
    if auth.type == "basic":
        return bool(auth.basic and (auth.basic.username or auth.basic.password))
    if auth.type == "bearer":
        return bool(auth.bearer and auth.bearer.token)
    if auth.type == "api-key":
        return bool(auth.api_key and auth.api_key.key)
    return True


def generate_auth_headers(auth: AuthConfig) -> dict[str, str]:
    """Headers implied by the auth config. Only fields matching auth.type are read."""
    headers = {}
    if auth.type == "basic" and auth.basic and (auth.basic.username or auth.basic.password):
        credentials = f"{auth.basic.username}:{auth.basic.password}".encode("utf-8")
        headers["Authorization"] = "Basic " + base64.b64encode(credentials).decode("ascii")
    elif auth.type == "bearer" and auth.bearer and auth.bearer.token:
        headers["Authorization"] = f"Bearer {auth.bearer.token}"
    elif auth.type == "api-key" and auth.api_key and auth.api_key.key and auth.api_key.add_to == "header":
        headers[auth.api_key.key] = auth.api_key.value or ""
    return headers


def generate_auth_query_param(auth: AuthConfig) -> KeyValuePair | None:
    if auth.type == "api-key" and auth.api_key and auth.api_key.key and auth.api_key.add_to == "query":
        return KeyValuePair(key=auth.api_key.key, value=auth.api_key.value or "", enabled=True)
    return None


def apply_auth(request: HttpRequest) -> HttpRequest:
    """
    Copy of a resolved request with its auth materialized into headers or
    query params. Anything the user set explicitly (enabled, same name,
    case-insensitive for headers) is left alone and the generated value dropped.
    """
    result = request.model_copy(deep=True)

    user_headers = {h.key.lower() for h in result.headers if h.enabled and h.key}
    for key, value in generate_auth_headers(result.auth).items():
        if key.lower() not in user_headers:
            result.headers.append(KeyValuePair(key=key, value=value, enabled=True))

    param = generate_auth_query_param(result.auth)
    if param is not None and not any(p.enabled and p.key == param.key for p in result.query_params):
        result.query_params.append(param)

    return result
