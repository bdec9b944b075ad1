
"""
Task subsystem.

Components:
- task_models.py: data structures (Task, RepeatRule, Occurrence, TaskList) + parsing
- occurrences.py: recurring-task occurrence resolver (active / upcoming)
- lifecycle.py: expired -> archived transitions for one-off tasks
- task_store.py: SQLite-backed storage for task lists and tasks
"""
