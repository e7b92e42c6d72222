"""
Compliance Kernel

Workflow core of a compliance-tracking console:
- Recurrence engine for activity due dates
- Maker/Checker/Reviewer/Auditor approval lifecycle
- Turnaround-time (pTAT/aTAT) tracking per stage
- Compliance classification and score cards
"""

__version__ = "0.1.0"
