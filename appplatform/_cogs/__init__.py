"""
Low-level building blocks: settings, data structures, raw API clients.

Nothing here knows about the typed clients or the secrets API.
The cogs can be imported by any upper layer, but never import from them.
"""
