# agencyos/modules/documents/filler.py
from typing import Any, Dict, Iterable, List, Optional

from jinja2 import ChainableUndefined, TemplateError, TemplateSyntaxError, meta
from jinja2.sandbox import SandboxedEnvironment

from .number_words import number_to_words

# synonym -> canonical variable name
VARIABLE_SYNONYMS: Dict[str, str] = {
    "executor_basis": "executor_authority_basis",
    "executor_position": "executor_director_position",
    "services_description": "service_description",
    "customer_name": "client_name",
    "customer_company": "client_company",
    "customer_legal_name": "client_legal_name",
    "customer_bin": "client_bin",
    "customer_email": "client_email",
    "customer_phone": "client_phone",
    "customer_address": "client_address",
    "customer_director": "client_director",
    "customer_position": "client_position",
    "customer_authority_basis": "client_authority_basis",
    "customer_basis": "client_authority_basis",
    "customer_bank": "client_bank",
    "customer_iban": "client_iban",
    "customer_bik": "client_bik",
    "client_basis": "client_authority_basis",
}

LOOP_VARIABLES = ("services", "items", "tasks", "payments", "stages")


class TemplateRenderError(ValueError):
    def __init__(self, message: str, lineno: Optional[int] = None):
        super().__init__(message)
        self.lineno = lineno


_env = SandboxedEnvironment(
    autoescape=True,
    undefined=ChainableUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
    finalize=lambda value: "" if value is None else value,
)


def parse_variables(content: str) -> List[str]:
    """Sorted names of the undeclared variables a template refers to."""
    try:
        ast = _env.parse(content)
    except TemplateSyntaxError as e:
        raise TemplateRenderError(f"Template syntax error on line {e.lineno}: {e.message}", e.lineno) from e
    return sorted(meta.find_undeclared_variables(ast))


def prepare_variables(
    variables: Dict[str, Any],
    parsed_variables: Iterable[str] = (),
    amount: Optional[float] = None,
) -> Dict[str, Any]:
    """Fills synonyms, blanks and loop lists so every template variable resolves."""
    prepared = dict(variables)
    parsed = list(parsed_variables)

    for synonym, canonical in VARIABLE_SYNONYMS.items():
        if prepared.get(canonical) and not prepared.get(synonym):
            prepared[synonym] = prepared[canonical]

    for name in parsed:
        if name not in prepared:
            prepared[name] = ""

    for loop_name in LOOP_VARIABLES:
        if loop_name in parsed and not isinstance(prepared.get(loop_name), list):
            value = prepared.get(loop_name)
            prepared[loop_name] = [value] if value else []

    if amount is not None and not prepared.get("amount_in_words"):
        prepared["amount_in_words"] = number_to_words(amount)
    return prepared


def render(content: str, variables: Dict[str, Any]) -> str:
    try:
        template = _env.from_string(content)
    except TemplateSyntaxError as e:
        raise TemplateRenderError(f"Template syntax error on line {e.lineno}: {e.message}", e.lineno) from e
    try:
        return template.render(**variables)
    except TemplateError as e:
        raise TemplateRenderError(f"Template rendering failed: {e}") from e
