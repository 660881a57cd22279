"""auth/ -- Session authentication for SmartTicket.

Password hashing, session tokens, the principal store, signup/login
orchestration, and the FastAPI gate for protected routes.

Layer rule: auth/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/ or client/.
"""
