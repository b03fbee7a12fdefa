"""Decision store package: protocol and adapters."""

from whereto.store.memory import InMemoryDecisionStore
from whereto.store.protocol import DecisionStore
from whereto.store.sql import SqlDecisionStore

__all__ = ["DecisionStore", "InMemoryDecisionStore", "SqlDecisionStore"]
