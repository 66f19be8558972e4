"""
Notion property values to front matter values.

Every property variant maps to a string, number, boolean, flat list, or
None. Unknown or malformed variants map to None so that a schema change
in Notion never breaks a sync.
"""

from typing import Callable, Optional, Union

Scalar = Union[str, int, float, bool]
Normalized = Optional[Union[Scalar, list]]


def rich_text_to_plain(rich_text) -> str:
    """Concatenate the plain text of a rich text array, no separator."""
    if not isinstance(rich_text, list):
        return ""
    return "".join(
        part.get("plain_text") or "" for part in rich_text if isinstance(part, dict)
    )


def first_title_text(properties: Optional[dict]) -> Optional[str]:
    """Text of the first non-empty title property, stripped; None if there is none."""
    for prop in (properties or {}).values():
        if isinstance(prop, dict) and prop.get("type") == "title" and prop.get("title"):
            return rich_text_to_plain(prop["title"]).strip() or None
    return None


def _name(value: Optional[dict]) -> Optional[str]:
    return (value or {}).get("name")


def _date_start(value: Optional[dict]) -> Optional[str]:
    return (value or {}).get("start")


def _people(people) -> list:
    result = []
    for person in people or []:
        if not isinstance(person, dict):
            continue
        label = person.get("name") or (person.get("person") or {}).get("email") or person.get("id")
        if label:
            result.append(label)
    return result


def _files(files) -> list:
    urls = []
    for item in files or []:
        kind = (item or {}).get("type")
        if kind in ("file", "external"):
            url = (item.get(kind) or {}).get("url")
            if url:
                urls.append(url)
    return urls


def _relation(relation) -> list:
    return [ref["id"] for ref in relation or [] if isinstance(ref, dict) and ref.get("id")]


def _formula(formula: Optional[dict]) -> Normalized:
    formula = formula or {}
    kind = formula.get("type")
    if kind == "date":
        return _date_start(formula.get("date"))
    if kind in ("string", "number", "boolean"):
        return formula.get(kind)
    return None


def _rollup(rollup: Optional[dict]) -> Normalized:
    """
    Rollups over arrays dispatch each element back through
    normalize_property, so a rollup of rollups recurses to any depth.
    List results are flattened into the enclosing array.
    """
    rollup = rollup or {}
    kind = rollup.get("type")

    if kind == "number":
        return rollup.get("number")
    if kind == "date":
        return _date_start(rollup.get("date"))
    if kind != "array":
        return None

    values = []
    for element in rollup.get("array") or []:
        value = normalize_property(element)
        if value is None:
            continue
        if isinstance(value, list):
            values.extend(value)
        else:
            values.append(value)
    return values


_HANDLERS: dict[str, Callable[[dict], Normalized]] = {
    "title": lambda prop: rich_text_to_plain(prop.get("title")),
    "rich_text": lambda prop: rich_text_to_plain(prop.get("rich_text")),
    "select": lambda prop: _name(prop.get("select")),
    "multi_select": lambda prop: [
        option["name"] for option in prop.get("multi_select") or [] if option.get("name")
    ],
    "status": lambda prop: _name(prop.get("status")),
    "date": lambda prop: _date_start(prop.get("date")),
    "checkbox": lambda prop: bool(prop.get("checkbox")),
    "number": lambda prop: prop.get("number"),
    "url": lambda prop: prop.get("url"),
    "email": lambda prop: prop.get("email"),
    "phone_number": lambda prop: prop.get("phone_number"),
    "people": lambda prop: _people(prop.get("people")),
    "files": lambda prop: _files(prop.get("files")),
    "relation": lambda prop: _relation(prop.get("relation")),
    "formula": lambda prop: _formula(prop.get("formula")),
    "rollup": lambda prop: _rollup(prop.get("rollup")),
}


def normalize_property(prop) -> Normalized:
    """
    Convert one typed property value to its front matter form.

    Never raises: unsupported types and malformed payloads return None.
    """
    if not isinstance(prop, dict):
        return None

    handler = _HANDLERS.get(prop.get("type"))
    if handler is None:
        return None

    try:
        return handler(prop)
    except (AttributeError, KeyError, TypeError):
        return None
