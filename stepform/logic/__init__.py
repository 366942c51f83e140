"""Session/state engine for stepwise questionnaires."""
