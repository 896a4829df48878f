"""Domain layer for finledger application.

Submodules are imported directly (``finledger.domain.controller`` etc.) so the
storage layer can depend on the entity modules without import cycles.
"""
