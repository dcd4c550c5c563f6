import re
from hashlib import sha256

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")
_AMBIGUOUS_PATH_CHARS = frozenset("-{}+")


def safe_name(
    prefix: str, name: str, max_length: int, suffix: str = "", pulumi_suffix_length: int = 8
) -> str:
    """Create safe AWS resource name accounting for Pulumi suffix and custom suffix.

    Args:
        prefix: The app-env prefix (e.g., "myapp-prod-")
        name: The base name for the resource
        max_length: AWS service limit for the resource type
        suffix: Custom suffix to add (e.g., '-r', '-p')
        pulumi_suffix_length: Length of Pulumi's random suffix (default 8, use 0 if none)

    Returns:
        Safe name that will fit within AWS limits after Pulumi adds its suffix
    """
    reserved_space = len(prefix) + len(suffix) + pulumi_suffix_length
    available_for_name = max_length - reserved_space

    if available_for_name <= 0:
        raise ValueError(
            f"Cannot create safe name: prefix '{prefix}' ({len(prefix)} chars), "
            f"suffix '{suffix}' ({len(suffix)} chars), and Pulumi suffix "
            f"({pulumi_suffix_length} chars) exceed max_length ({max_length})"
        )

    if not name.strip():
        raise ValueError("Name cannot be empty or whitespace-only")

    if len(name) <= available_for_name:
        return f"{prefix}{name}{suffix}"

    # Need to truncate - reserve space for 7-char hash + dash
    hash_with_separator = 8
    if available_for_name <= hash_with_separator:
        raise ValueError(
            f"Not enough space for name truncation: available={available_for_name}, "
            f"need at least {hash_with_separator} chars for hash"
        )

    truncate_length = available_for_name - hash_with_separator
    name_hash = sha256(name.encode()).hexdigest()[:7]
    return f"{prefix}{name[:truncate_length]}-{name_hash}{suffix}"


def pascal_case(value: str) -> str:
    """'main-table' -> 'MainTable'. Used for IAM statement ids, which must be alphanumeric."""
    return "".join(part[:1].upper() + part[1:] for part in _NON_ALNUM.split(value) if part)


def camel_case(value: str) -> str:
    """'bucket_regional_domain_name' -> 'bucketRegionalDomainName'."""
    head, *rest = value.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def path_to_resource_name(path_parts: tuple[str, ...] | list[str]) -> str:
    """Convert path parts to a valid resource name.

    Example: ['users', 'orders'] -> 'users-orders'

    Strips curly braces and converts special characters to safe names. Paths holding a
    segment with '-', '{', '}' or '+' get a short hash of the whole path appended, so
    '/a-b' and '/a/b' (or '/items/id' and '/items/{id}') never share a name.
    """
    if not path_parts:
        return "root"
    safe_parts = [
        part.replace("{", "").replace("}", "").replace("+", "plus") for part in path_parts
    ]
    name = "-".join(safe_parts)
    if name == "root" or any(_AMBIGUOUS_PATH_CHARS.intersection(part) for part in path_parts):
        path_hash = sha256("/".join(path_parts).encode()).hexdigest()[:7]
        name = f"{name}-{path_hash}"
    return name
