"""
Recipe store backends.

This package contains:
- base: BaseRecipeStore contract and shared live-listener bookkeeping
- sql_store: Relational backend (SQLAlchemy)
- document_store: Document backend with snapshot listeners
"""
