"""Generators for diagrams and plan reports."""

from infraplan.generators.dot import generate_dot
from infraplan.generators.markdown import generate_plan_doc
from infraplan.generators.mermaid import generate_mermaid

__all__ = [
    "generate_dot",
    "generate_mermaid",
    "generate_plan_doc",
]
