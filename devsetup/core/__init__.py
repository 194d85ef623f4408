"""
devsetup Core

Configuration loading, the environment context, the reconciler base
class and the orchestrator that sequences the domains.
"""
