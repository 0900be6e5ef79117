"""
HAL broker client.

Navigates a contract-testing broker by following the links in its HAL
responses, and publishes consolidated verification results back to it.
"""
