"""
Resolver document processing.

Parsing, `$ref` resolution, modifier inputs, the resolution engine and
alias resolution. The public entry points are re-exported from `tokenweave`.
"""
