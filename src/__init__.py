"""
Competitive Intelligence Chat.

A deterministic query-understanding and analytics core that answers
free-text questions about monthly competitive-intelligence snapshots, with
an optional bounded tool-calling loop against Claude.
"""

__version__ = "1.0.0"
__author__ = "Competitive Intelligence Team"

# Lazy imports to avoid circular dependencies
def get_orchestrator():
    """Get the ChatOrchestrator class (lazy import)."""
    from src.pipeline.orchestrator import ChatOrchestrator
    return ChatOrchestrator

__all__ = ["get_orchestrator", "__version__"]
