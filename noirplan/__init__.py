"""NoirPlan - murder mystery party builder"""

__version__ = "0.1.0"
