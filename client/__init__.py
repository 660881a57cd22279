"""client/ -- Python client for the SmartTicket API.

Layer rule: client/ imports only core/, stdlib, and third-party libraries.
It talks to the server over HTTP and never imports from api/ or auth/.
"""
