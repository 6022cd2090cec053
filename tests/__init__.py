"""
authaccess test suite.

- Rule and rule group evaluation
- Policy registry declaration and validation
- Ownership
- Access gate decisions and configuration
- Interception hooks and failure modes
- Lifecycle scenarios against the in-memory store
- Context isolation
- Pydantic integration
- Configuration, decisions and exceptions
"""
