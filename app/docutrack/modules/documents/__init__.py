"""
Documents module.

Lifecycle (lightweight):
- Documents move assigned -> in-progress -> review -> completed
- Content is never edited in place; every change appends a numbered version
- Meaningful actions are recorded to the append-only audit trail
"""
