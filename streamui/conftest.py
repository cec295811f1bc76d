import pytest

from streamui.tree.models import UITree


def el(key, type_="Text", props=None, children=None, parent_key=None, action=None):
    element = {"key": key, "type": type_, "props": props or {}}
    if children is not None:
        element["children"] = list(children)
    if parent_key is not None:
        element["parentKey"] = parent_key
    if action is not None:
        element["action"] = {"name": action}
    return element


@pytest.fixture
def make_element():
    return el


@pytest.fixture
def counter_tree():
    return UITree(
        root="card",
        elements={
            "card": el("card", "Surface", children=["count-display", "inc", "dec"]),
            "count-display": el(
                "count-display", "Text", {"children": "5"}, parent_key="card"
            ),
            "inc": el("inc", "Button", {"children": "+"}, parent_key="card", action="increment"),
            "dec": el("dec", "Button", {"children": "-"}, parent_key="card", action="decrement"),
        },
    )


@pytest.fixture
def form_tree():
    return UITree(
        root="form",
        elements={
            "form": el("form", "Surface", children=["name", "email", "notes", "label", "btn"]),
            "name": el("name", "Input", {"label": "Name"}, parent_key="form"),
            "email": el("email", "Input", {"label": "Email"}, parent_key="form"),
            "notes": el("notes", "Textarea", {"label": "Notes"}, parent_key="form"),
            "label": el("label", "Text", {"children": "Fill in"}, parent_key="form"),
            "btn": el("btn", "Button", {"children": "Send"}, parent_key="form", action="submit_form"),
        },
    )
