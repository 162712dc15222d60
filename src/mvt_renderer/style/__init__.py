"""Style document handling: parsing, attribute analysis and compilation."""

from .attributes import extract_attributes, extract_template_fields, text_field_attributes
from .compiler import CompiledStyle, Rule, TextSymbolizer, compile_layer
from .document import StyleDocument, StyleLayerSpec, parse_style_document
from .resolver import StyleResolver, compute_field_requirements

__all__ = [
    "CompiledStyle",
    "Rule",
    "StyleDocument",
    "StyleLayerSpec",
    "StyleResolver",
    "TextSymbolizer",
    "compile_layer",
    "compute_field_requirements",
    "extract_attributes",
    "extract_template_fields",
    "parse_style_document",
    "text_field_attributes",
]
