"""
Contracts (data models).

This folder defines the shapes shared by the HAL client, the broker client
and the accumulator:
- links, link queries and resolved paths
- consumer descriptors and pact/interaction references
- transport request/response interface
- verification outcomes and their identity hashes

Both the real and the in-memory transports use these contracts.
"""
