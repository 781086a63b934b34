"""
Token document handling: node classification, group extension, flattening.

Modules are imported directly (e.g. `import tokenweave.tokens.flattener as
flattener`); the public entry points are re-exported from `tokenweave`.
"""
