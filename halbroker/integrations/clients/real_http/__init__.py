"""
Real HTTP transport.

Talks to a running broker over HTTP with retries and authentication.

Important:
- Must implement the same Transport interface as the in-memory transport
- Must return TransportResponse objects as defined in integrations/contracts
"""
