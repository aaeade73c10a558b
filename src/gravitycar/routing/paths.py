"""Path component parsing shared by the registry, scorer and Request.

A path is split into its ``/``-delimited components. Registered paths may
contain wildcard components: the bare marker ``?`` or a brace-delimited
name such as ``{id}``. Both match any single client component.
"""

WILDCARD = "?"


def parse_path_components(path: str) -> list[str]:
    """Split a path into components.

    Examples::

        "/"              -> []
        "/Users"         -> ["Users"]
        "/Users/123/"    -> ["Users", "123"]
    """
    if not path or path == "/":
        return []
    return path.strip("/").split("/")


def is_wildcard(component: str) -> bool:
    """True for ``?`` and ``{name}`` components."""
    if component == WILDCARD:
        return True
    return len(component) > 2 and component.startswith("{") and component.endswith("}")


def dynamic_positions(components: list[str]) -> list[int]:
    """Indexes of the wildcard components, in path order."""
    return [i for i, component in enumerate(components) if is_wildcard(component)]


def path_length(path: str) -> int:
    """Number of components in *path*."""
    return len(parse_path_components(path))
