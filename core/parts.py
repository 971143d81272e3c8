"""Apply mutations to the non-body parts of a request."""

from core.request_types import Part, Transform, keys_match


def mutate_values(
    values: dict[str, list[str]],
    part: Part,
    transform: Transform,
) -> dict[str, list[str]]:
    """Copy a multi-valued mapping, collapsing the targeted key to one value."""
    mutated: dict[str, list[str]] = {}
    for key, items in values.items():
        if transform.part is part and keys_match(transform.key, key):
            mutated[key] = [transform.value]
        else:
            mutated[key] = list(items)
    return mutated


def mutate_path(path: str, transform: Transform) -> str:
    """Replace the path segment whose zero-based index is the transform key.

    Only non-empty segments are counted. `?` and `#` in the value are
    percent-encoded so the value cannot leak into the query or fragment.
    """
    if transform.part is not Part.PATH or not transform.key.isdigit():
        return path
    target = int(transform.key)
    segments = path.split("/")
    index = 0
    for pos, segment in enumerate(segments):
        if not segment:
            continue
        if index == target:
            segments[pos] = transform.value.replace("?", "%3F").replace("#", "%23")
            return "/".join(segments)
        index += 1
    return path


def path_segments(path: str) -> list[str]:
    """Non-empty path segments, indexed the way mutate_path counts them."""
    return [segment for segment in path.split("/") if segment]
