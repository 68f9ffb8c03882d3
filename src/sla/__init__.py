"""
SLA Module
==========

Bounded Context for business-hours Service Level Agreements.

Responsibilities:
- Calculate response and resolution deadlines in business time
- Measure elapsed business minutes between two instants
- Classify tickets as on track, approaching, critical or breached
- Pause and resume the SLA clock while waiting on the customer
- Sweep active tickets periodically and notify on escalation
"""

__version__ = "1.0.0"
