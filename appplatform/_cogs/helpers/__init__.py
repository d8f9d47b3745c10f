"""
General-purpose helpers not related to the clients themselves,
which are used to prepare and control the runtime environment.

Helpers do not depend on anything in the package. They do not implement
any entities or behaviours of the resource API domain, but rather some
unrelated low-level patterns.
"""
