"""
Feature modules for the PredictX client.

Each module is self-contained with its own:
- interfaces.py: Protocol definitions for the module's public API
- models.py: Pydantic models for data transfer
- client.py: Implementation talking to the backend
- exceptions.py: Module-specific exceptions

Modules communicate through interfaces, not concrete implementations.
"""
