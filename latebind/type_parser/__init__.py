"""
latebind.type_parser: lark grammar and resolver for textual type expressions
and member signatures.
"""

from latebind.type_parser.parser import ParsedSignature, TypeParser

__all__ = ["ParsedSignature", "TypeParser"]
