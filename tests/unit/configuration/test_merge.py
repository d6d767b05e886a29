from hypothesis import given, strategies as st

from runtime_config.configuration.merge import deep_merge, get_path, merge_layers

keys = st.text(alphabet="abcdef", min_size=1, max_size=3)
scalars = st.one_of(st.integers(), st.text(max_size=5), st.booleans(), st.none())
values = st.recursive(
    scalars | st.lists(scalars, max_size=3),
    lambda children: st.dictionaries(keys, children, max_size=3),
    max_leaves=8,
)
trees = st.dictionaries(keys, values, max_size=4)


def test_nested_mappings_merge_key_by_key():
    base = {"port": 80, "address": {"state": "CO", "zip": "80401"}}
    overlay = {"address": {"state": "PA", "city": "Denver"}}

    assert deep_merge(base, overlay) == {
        "port": 80,
        "address": {"state": "PA", "zip": "80401", "city": "Denver"},
    }


def test_lists_are_replaced_not_concatenated():
    merged = deep_merge({"ips": ["1.1.1.1", "1.1.1.2", "1.1.1.3"]}, {"ips": ["2.2.2.1"]})
    assert merged == {"ips": ["2.2.2.1"]}


def test_scalar_replaces_mapping_and_mapping_replaces_scalar():
    assert deep_merge({"a": {"b": 1}}, {"a": 5}) == {"a": 5}
    assert deep_merge({"a": 5}, {"a": {"b": 1}}) == {"a": {"b": 1}}


def test_explicit_none_in_overlay_wins():
    assert deep_merge({"a": 1}, {"a": None}) == {"a": None}


def test_inputs_are_not_mutated():
    base = {"address": {"state": "CO"}, "ips": [1]}
    overlay = {"address": {"city": "Denver"}}
    merged = deep_merge(base, overlay)

    merged["address"]["state"] = "XX"
    merged["ips"].append(2)

    assert base == {"address": {"state": "CO"}, "ips": [1]}
    assert overlay == {"address": {"city": "Denver"}}


def test_merge_layers_skips_empty_layers_and_respects_order():
    merged = merge_layers([{"port": 1, "name": "d"}, None, {}, {"port": 2}, {"port": 3}])
    assert merged == {"port": 3, "name": "d"}


def test_merge_layers_of_nothing_is_empty():
    assert merge_layers([]) == {}


def test_get_path():
    tree = {"address": {"city": "Denver", "geo": {"lat": 39.7}}, "port": 90, "empty": None}

    assert get_path(tree, "port") == 90
    assert get_path(tree, "address.city") == "Denver"
    assert get_path(tree, "address.geo.lat") == 39.7
    assert get_path(tree, "empty", "fallback") is None
    assert get_path(tree, "address.zip") is None
    assert get_path(tree, "address.zip", "n/a") == "n/a"
    assert get_path(tree, "port.number", 0) == 0
    assert get_path(tree, "") is None


@given(trees)
def test_merge_with_empty_is_identity(tree):
    assert deep_merge(tree, {}) == tree
    assert deep_merge({}, tree) == tree


@given(trees, trees)
def test_overlay_top_level_non_mapping_values_win(base, overlay):
    merged = deep_merge(base, overlay)
    for key, value in overlay.items():
        if not isinstance(value, dict):
            assert merged[key] == value
    for key in base:
        assert key in merged


@given(trees)
def test_merge_is_idempotent(tree):
    assert deep_merge(tree, tree) == tree


@given(trees, trees)
def test_reapplying_an_overlay_changes_nothing(base, overlay):
    once = deep_merge(base, overlay)
    assert deep_merge(once, overlay) == once
