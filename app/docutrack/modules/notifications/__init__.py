"""
Notifications module: per-user inbox fed by document lifecycle events and
deadline reminders.
"""
