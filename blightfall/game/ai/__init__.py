"""Hostile-phase AI behaviors."""

from .ai_behaviors import AIAction, AIBehavior, AIDecision, GreedyMeleeAI, greedy_step

__all__ = ["AIAction", "AIBehavior", "AIDecision", "GreedyMeleeAI", "greedy_step"]
