"""
HTTP routers: remote configuration channel and agent status.
"""
