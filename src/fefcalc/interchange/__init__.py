"""
Formula document interchange.

Persists a parsed formula, its optional name and its variable names, and
reads them back through the composition interface.
"""

from fefcalc.interchange.document import (
    DOCUMENT_VERSION,
    DocumentEncoder,
    FormulaDocument,
    TreeBuilder,
    VariableName,
    compose_document,
    decode_document,
    encode_document,
    evaluate_document,
    read_document,
    variable_names,
    write_document,
)

__all__ = [
    "DOCUMENT_VERSION",
    "DocumentEncoder",
    "FormulaDocument",
    "TreeBuilder",
    "VariableName",
    "compose_document",
    "decode_document",
    "encode_document",
    "evaluate_document",
    "read_document",
    "variable_names",
    "write_document",
]
