# tests/modules/documents/test_filler.py
import pytest

from agencyos.modules.documents.filler import TemplateRenderError, parse_variables, prepare_variables, render

CONTRACT = (
    "<h1>Договор {{ contract_number }}</h1>"
    "<p>Заказчик: {{ customer_name }}, БИН {{ client_bin }}</p>"
    "{% for s in services %}<li>{{ s }}</li>{% endfor %}"
    "<p>Сумма: {{ amount_in_words }}</p>"
)


def test_parse_variables_lists_undeclared_names():
    assert parse_variables(CONTRACT) == ["amount_in_words", "client_bin", "contract_number", "customer_name", "services"]


def test_parse_variables_reports_syntax_errors():
    with pytest.raises(TemplateRenderError) as exc_info:
        parse_variables("{% for x in items %}no end")
    assert "syntax error" in str(exc_info.value)


def test_prepare_fills_synonyms_blanks_and_loops():
    prepared = prepare_variables({"client_name": "ТОО Ромашка", "services": "SMM"}, parse_variables(CONTRACT), amount=1000)

    assert prepared["customer_name"] == "ТОО Ромашка"
    assert prepared["client_bin"] == ""
    assert prepared["services"] == ["SMM"]
    assert prepared["amount_in_words"] == "Одна тысяча тенге 00 тиын"


def test_explicit_amount_in_words_is_kept():
    prepared = prepare_variables({"amount_in_words": "по договорённости"}, ["amount_in_words"], amount=5)
    assert prepared["amount_in_words"] == "по договорённости"


def test_render_escapes_html_and_blanks_none():
    html = render("<b>{{ name }}</b>{{ missing }}|{{ nothing }}", {"name": "<script>", "nothing": None})
    assert html == "<b>&lt;script&gt;</b>|"


def test_render_is_sandboxed():
    with pytest.raises(TemplateRenderError):
        render("{{ ''.__class__() }}", {})


def test_render_full_contract():
    variables = prepare_variables(
        {"contract_number": "DOC-1", "client_name": "Acme", "services": ["SMM", "Ads"]},
        parse_variables(CONTRACT),
        amount=2500,
    )
    html = render(CONTRACT, variables)
    assert "Договор DOC-1" in html
    assert "Заказчик: Acme" in html
    assert "<li>SMM</li><li>Ads</li>" in html
    assert "Две тысячи пятьсот тенге 00 тиын" in html
