import json
import logging

import pytest

from streamui.actions.models import (
    ActionEvent,
    ExternalResult,
    MessageResult,
    NoneResult,
    PatchResult,
)
from streamui.actions.registry import (
    BUILTIN_HANDLERS,
    create_handler_map,
    dispatch_action,
)
from streamui.tree.models import UITree
from streamui.tree.rfc6902 import PatchOp, apply_patches


def event(name, params=None, context=None, source_key="btn"):
    return ActionEvent(action_name=name, source_key=source_key, params=params, context=context)


def tree_with_count(value):
    return UITree(
        root="count-display",
        elements={
            "count-display": {"key": "count-display", "type": "Text", "props": {"children": value}}
        },
    )


@pytest.fixture
def fields_tree(make_element):
    return UITree(
        root="container",
        elements={
            "container": make_element("container", "Div", children=["form", "outside"]),
            "form": make_element("form", "Div", children=["email", "notes", "submit"], parent_key="container"),
            "email": make_element("email", "Input", parent_key="form"),
            "notes": make_element("notes", "Textarea", parent_key="form"),
            "submit": make_element("submit", "Button", parent_key="form", action="submit_form"),
            "outside": make_element("outside", "Input", parent_key="container"),
        },
    )


def test_builtin_names():
    assert sorted(BUILTIN_HANDLERS) == ["decrement", "increment", "navigate", "submit_form"]


class TestCounter:
    def test_increment_emits_replace_patch(self):
        result = BUILTIN_HANDLERS["increment"](event("increment", {"target": "count-display"}), tree_with_count("5"))
        assert result == PatchResult(
            patches=[PatchOp.replace("/elements/count-display/props/children", "6")]
        )

    def test_decrement_below_zero(self):
        result = BUILTIN_HANDLERS["decrement"](event("decrement"), tree_with_count("0"))
        assert result.patches[0].value == "-1"

    @pytest.mark.parametrize(
        "display,expected",
        [("hello", "1"), (None, "1"), (7, "8"), ("12px", "13"), (" 3", "4"), (True, "1")],
    )
    def test_increment_reads_display_value(self, display, expected):
        result = BUILTIN_HANDLERS["increment"](event("increment"), tree_with_count(display))
        assert result.patches[0].value == expected

    def test_missing_target_returns_none(self):
        assert BUILTIN_HANDLERS["increment"](event("increment"), UITree()) is None
        result = BUILTIN_HANDLERS["decrement"](event("decrement", {"target": "ghost"}), tree_with_count("1"))
        assert result is None

    def test_custom_target(self, make_element):
        tree = UITree(root="a/b", elements={"a/b": make_element("a/b", props={"children": "2"})})
        result = BUILTIN_HANDLERS["increment"](event("increment", {"target": "a/b"}), tree)
        assert result.patches[0].path == "/elements/a~1b/props/children"
        assert apply_patches(tree, result.patches).elements["a/b"]["props"]["children"] == "3"

    def test_counter_patch_applies(self, counter_tree):
        result = dispatch_action(BUILTIN_HANDLERS, event("increment"), counter_tree)
        updated = apply_patches(counter_tree, result.patches)
        assert updated.elements["count-display"]["props"]["children"] == "6"
        assert updated.elements["inc"] is counter_tree.elements["inc"]


class TestSubmitForm:
    def test_message_payload(self, fields_tree):
        result = BUILTIN_HANDLERS["submit_form"](
            event(
                "submit_form",
                params={"form_type": "contact"},
                context={"runtimeValues": {"email": "a@b.com"}},
            ),
            fields_tree,
        )
        assert isinstance(result, MessageResult)
        assert result.payload == {
            "actionName": "submit_form",
            "sourceKey": "btn",
            "params": {"form_type": "contact"},
            "fields": {"email": "a@b.com"},
        }
        assert result.content == (
            '{"actionName":"submit_form","fields":{"email":"a@b.com"},'
            '"params":{"form_type":"contact"},"sourceKey":"btn"}'
        )

    def test_stable_json_with_sorted_keys(self, fields_tree):
        result = BUILTIN_HANDLERS["submit_form"](
            event(
                "submit_form",
                params={"b": 1, "a": 2},
                context={"runtimeValues": {"outside": "y", "notes": "x"}},
            ),
            fields_tree,
        )
        assert result.content == (
            '{"actionName":"submit_form","fields":{"notes":"x","outside":"y"},'
            '"params":{"a":2,"b":1},"sourceKey":"btn"}'
        )
        assert list(json.loads(result.content)) == ["actionName", "fields", "params", "sourceKey"]

    def test_nested_params_are_sorted(self, fields_tree):
        result = BUILTIN_HANDLERS["submit_form"](
            event("submit_form", params={"meta": {"z": 1, "a": [{"y": 1, "b": 2}]}}),
            fields_tree,
        )
        assert '"params":{"meta":{"a":[{"b":2,"y":1}],"z":1}}' in result.content

    def test_non_field_and_unknown_keys_are_dropped(self, fields_tree):
        result = BUILTIN_HANDLERS["submit_form"](
            event(
                "submit_form",
                context={"runtimeValues": {"email": "a", "submit": "x", "ghost": "g", "notes": None}},
            ),
            fields_tree,
        )
        assert result.payload["fields"] == {"email": "a"}

    def test_scopes_to_form_key_subtree(self, fields_tree):
        result = BUILTIN_HANDLERS["submit_form"](
            event(
                "submit_form",
                params={"formKey": "form", "form_type": "contact"},
                context={"runtimeValues": {"email": "a@b.com", "outside": "y"}},
            ),
            fields_tree,
        )
        assert result.payload["fields"] == {"email": "a@b.com"}
        assert result.payload["params"] == {"form_type": "contact"}

    def test_form_key_uses_parent_links(self, make_element):
        tree = UITree(
            root="form",
            elements={
                "form": make_element("form", "Div"),
                "group": make_element("group", "Div", parent_key="form"),
                "email": make_element("email", "Input", parent_key="group"),
                "other": make_element("other", "Input"),
            },
        )
        result = BUILTIN_HANDLERS["submit_form"](
            event(
                "submit_form",
                params={"formKey": "form"},
                context={"runtimeValues": {"email": "e", "other": "o"}},
            ),
            tree,
        )
        assert result.payload["fields"] == {"email": "e"}

    def test_scopes_to_field_keys(self, fields_tree):
        result = BUILTIN_HANDLERS["submit_form"](
            event(
                "submit_form",
                params={"fieldKeys": ["outside"], "form_type": "contact"},
                context={"runtimeValues": {"email": "a@b.com", "outside": "y"}},
            ),
            fields_tree,
        )
        assert result.payload["fields"] == {"outside": "y"}

    def test_fails_closed_when_ambiguous(self, fields_tree, make_element, caplog):
        elements = dict(fields_tree.elements)
        elements["second"] = make_element("second", "Button", parent_key="container", action="submit_form")
        tree = UITree(root=fields_tree.root, elements=elements)
        with caplog.at_level(logging.WARNING, logger="streamui"):
            result = BUILTIN_HANDLERS["submit_form"](
                event(
                    "submit_form",
                    params={"form_type": "contact"},
                    context={"runtimeValues": {"email": "a@b.com"}},
                ),
                tree,
            )
        assert result == NoneResult()
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "ambiguous" in warnings[0].getMessage()

    def test_explicit_scope_resolves_ambiguity(self, fields_tree, make_element):
        elements = dict(fields_tree.elements)
        elements["second"] = make_element("second", "Button", action="submit_form")
        tree = UITree(root=fields_tree.root, elements=elements)
        result = BUILTIN_HANDLERS["submit_form"](
            event(
                "submit_form",
                params={"formKey": "form"},
                context={"runtimeValues": {"email": "a@b.com"}},
            ),
            tree,
        )
        assert isinstance(result, MessageResult)

    @pytest.mark.parametrize("params", [None, {}])
    def test_no_data_returns_none_result(self, params):
        result = BUILTIN_HANDLERS["submit_form"](event("submit_form", params=params), UITree())
        assert result == NoneResult()

    def test_payload_content_is_valid_json(self, fields_tree):
        result = BUILTIN_HANDLERS["submit_form"](
            event("submit_form", params={"note": "Grüße"}), fields_tree
        )
        assert json.loads(result.content)["params"] == {"note": "Grüße"}
        assert "Grüße" in result.content


class TestNavigate:
    def test_external_result(self):
        result = BUILTIN_HANDLERS["navigate"](event("navigate", {"url": "https://example.com"}), UITree())
        assert result == ExternalResult(url="https://example.com")

    def test_forwards_target(self):
        result = BUILTIN_HANDLERS["navigate"](
            event("navigate", {"url": "/docs", "target": "_self"}), UITree()
        )
        assert result.target == "_self"

    @pytest.mark.parametrize("params", [None, {}, {"url": ""}, {"url": 5}])
    def test_requires_url(self, params):
        assert BUILTIN_HANDLERS["navigate"](event("navigate", params), UITree()) is None

    def test_ignores_non_string_target(self):
        result = BUILTIN_HANDLERS["navigate"](event("navigate", {"url": "/x", "target": 1}), UITree())
        assert result.target is None


class TestDispatch:
    def test_unregistered_action_returns_none(self):
        assert dispatch_action(BUILTIN_HANDLERS, event("unknown_action"), tree_with_count("5")) is None

    def test_handler_declining_returns_none(self):
        assert dispatch_action(BUILTIN_HANDLERS, event("navigate"), UITree()) is None

    def test_passes_event_and_tree(self):
        result = dispatch_action(BUILTIN_HANDLERS, event("submit_form", {"x": "y"}), UITree())
        assert result.content == (
            '{"actionName":"submit_form","fields":{},"params":{"x":"y"},"sourceKey":"btn"}'
        )

    def test_custom_handlers_override_builtins(self):
        handlers = create_handler_map({"increment": lambda e, t: NoneResult()})
        assert dispatch_action(handlers, event("increment"), tree_with_count("1")) == NoneResult()
        assert handlers["decrement"] is BUILTIN_HANDLERS["decrement"]

    def test_no_custom_handlers_returns_builtins(self):
        assert create_handler_map() is BUILTIN_HANDLERS

    def test_dict_results_are_validated(self):
        handlers = create_handler_map(
            {"ping": lambda e, t: {"type": "patch", "patches": [{"op": "add", "path": "/root", "value": "x"}]}}
        )
        result = dispatch_action(handlers, event("ping"), UITree())
        assert result == PatchResult(patches=[PatchOp.add("/root", "x")])

    def test_invalid_dict_result_raises(self):
        from pydantic import ValidationError

        handlers = create_handler_map({"bad": lambda e, t: {"type": "teleport"}})
        with pytest.raises(ValidationError):
            dispatch_action(handlers, event("bad"), UITree())
