"""
Tests for loading and validating the testcase and flow catalogs.
"""

import pytest

from flowbench.catalog import Catalog, Flow, Flows, Testcases
from flowbench.errors import CatalogError

from conftest import CATALOG_DIR


def test_load_fixture_catalog():
    catalog = Catalog.load(CATALOG_DIR)
    assert len(catalog.testcases) == 2
    assert catalog.flows.names == ["Function call", "Conditional", "Closure"]

    first = catalog.testcases[0]
    assert first.tags.ty == "DF"
    assert first.ty == "*const usize"
    assert first.val == "Rc::new(5usize)"
    assert first.features == ("rc", "raw-pointer")
    assert first.pos.src == "Rc::into_raw(x)"
    assert "SOURCE!()" in first.neg.code


def test_filter_by_ty():
    testcases = Testcases.from_file(CATALOG_DIR / "testcases.yaml")
    assert testcases.filter_by_ty("UAF") == [1]
    assert testcases.filter_by_ty("DF") == [0]
    assert testcases.filter_by_ty("NPD") == []


def test_fixture_baseline_programs():
    testcase = Catalog.load(CATALOG_DIR).testcases[0]
    pos, neg = testcase.into_programs("SOURCE!()")
    assert "let ptr = {\nRc::into_raw(x)\n}; // SOURCE" in pos
    assert pos.count("decrement_strong_count") == 2
    assert neg.count("decrement_strong_count") == 1


def test_missing_file_is_a_catalog_error(tmp_path):
    with pytest.raises(CatalogError, match="Cannot read"):
        Testcases.from_file(tmp_path / "testcases.yaml")


def test_malformed_yaml_is_a_catalog_error(tmp_path):
    path = tmp_path / "expressions.yaml"
    path.write_text("- name: [unclosed\n")
    with pytest.raises(CatalogError, match="Malformed YAML"):
        Flows.from_file(path)


def test_top_level_must_be_a_list(tmp_path):
    path = tmp_path / "expressions.yaml"
    path.write_text("name: Function call\ncode: x\n")
    with pytest.raises(CatalogError, match="expected a list"):
        Flows.from_file(path)


def test_missing_field_names_the_entry(tmp_path):
    path = tmp_path / "testcases.yaml"
    path.write_text(
        "- description: d\n"
        "  tags: {SP: s, UB: u, TY: UAF}\n"
        "  type: t\n"
        "  value: v\n"
        "  POS: {source: a, code: 'x SOURCE!()'}\n"
    )
    with pytest.raises(CatalogError, match=r"testcases.yaml\[0\]: missing required field 'NEG'"):
        Testcases.from_file(path)


def test_case_code_needs_a_source_marker(tmp_path):
    path = tmp_path / "testcases.yaml"
    path.write_text(
        "- description: d\n"
        "  tags: {SP: s, UB: u, TY: UAF}\n"
        "  features: []\n"
        "  type: t\n"
        "  value: 0\n"
        "  POS: {source: a, code: 'x SOURCE!()'}\n"
        "  NEG: {source: a, code: 'no marker here'}\n"
    )
    with pytest.raises(CatalogError, match="NEG: code has no SOURCE!"):
        Testcases.from_file(path)


def test_numeric_values_are_kept_as_text(tmp_path):
    path = tmp_path / "testcases.yaml"
    path.write_text(
        "- description: d\n"
        "  tags: {SP: s, UB: u, TY: BO}\n"
        "  type: usize\n"
        "  value: 16\n"
        "  POS: {source: a, code: 'x SOURCE!()'}\n"
        "  NEG: {source: b, code: 'y SOURCE!()'}\n"
    )
    testcase = Testcases.from_file(path)[0]
    assert testcase.val == "16"
    assert testcase.features == ()


def test_empty_flow_file_is_an_empty_catalog(tmp_path):
    path = tmp_path / "expressions.yaml"
    path.write_text("")
    assert len(Flows.from_file(path)) == 0


def test_duplicate_flow_names_are_rejected():
    with pytest.raises(CatalogError, match="Duplicate flow names: A"):
        Flows([Flow("A", "x"), Flow("B", "y"), Flow("A", "z")])
