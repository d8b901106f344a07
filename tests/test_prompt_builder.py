import pytest

from clinsql.models import ContextSnippet
from clinsql.online.prompt_builder import PromptBuilder
from clinsql.online.rules import CLINICAL_RULES, Rule, RuleSet


QUESTION = "List 5 patients with their next appointment after today"


@pytest.fixture
def builder():
    return PromptBuilder()


@pytest.fixture
def snippets():
    return [ContextSnippet(content="first doc"), ContextSnippet(content="second doc"), ContextSnippet(content="first doc")]


def test_build_is_deterministic(builder, snippets, whitelist):
    assert builder.build(QUESTION, snippets, whitelist) == builder.build(QUESTION, snippets, whitelist)


def test_build_renders_whitelist_lines(builder, snippets, whitelist):
    prompt = builder.build(QUESTION, snippets, whitelist)
    assert "- appointments: id, patient_id, starts_at, status" in prompt
    assert "- patients: id, full_name" in prompt


def test_build_keeps_snippet_order_and_duplicates(builder, snippets, whitelist):
    prompt = builder.build(QUESTION, snippets, whitelist)
    assert prompt.index("### Context 1\nfirst doc") < prompt.index("### Context 2\nsecond doc")
    assert "### Context 3\nfirst doc" in prompt


def test_build_contains_output_constraints_and_domain_rules(builder, snippets, whitelist):
    prompt = builder.build(QUESTION, snippets, whitelist)
    for rule in CLINICAL_RULES.output_rules + CLINICAL_RULES.domain_rules:
        assert rule.text in prompt
    assert prompt.endswith(f'User question: "{QUESTION}"')


def test_sections_appear_in_order(builder, snippets, whitelist):
    prompt = builder.build(QUESTION, snippets, whitelist)
    positions = [
        prompt.index("Return ONLY valid Postgres SQL."),
        prompt.index("Use ONLY these tables/columns"),
        prompt.index("Extra context:"),
        prompt.index("Hard rules:"),
    ]
    assert positions == sorted(positions)


def test_rules_are_addressable_by_name():
    assert "full_name" in CLINICAL_RULES.get("patient_name").text
    assert "LATERAL" in CLINICAL_RULES.get("next_appointment").text
    assert "$1" in CLINICAL_RULES.get("no_parameters").text
    with pytest.raises(KeyError):
        CLINICAL_RULES.get("does_not_exist")


def test_rule_set_can_be_swapped(snippets, whitelist):
    rules = RuleSet(
        name="billing",
        version="1",
        output_rules=(Rule("sql_only", "SQL please."),),
        domain_rules=(Rule("invoices", "Amounts are in cents."),),
        repair_rules=(Rule("fix", "Fix it."),),
    )
    prompt = PromptBuilder(rules).build("total billed?", snippets, whitelist)
    assert "Amounts are in cents." in prompt
    assert "full_name" not in prompt.split("Hard rules:")[1]


def test_repair_prompt_contains_failed_sql_error_and_whitelist(builder, whitelist):
    prompt = builder.build_repair(
        QUESTION,
        "SELECT p.birth_date FROM clinical.patients p",
        'column p.birth_date does not exist',
        whitelist,
    )
    assert "SQL:\nSELECT p.birth_date FROM clinical.patients p" in prompt
    assert "DB error: column p.birth_date does not exist" in prompt
    assert "- patients: id, full_name" in prompt
    for rule in CLINICAL_RULES.repair_rules:
        assert rule.text in prompt
    assert prompt.endswith(f'User question: "{QUESTION}"')


def test_empty_inputs_still_build(builder):
    prompt = builder.build(QUESTION, [], [])
    assert "Use ONLY these tables/columns" in prompt
    assert QUESTION in prompt
