"""taxcompare — progressive income-tax computation and old/new regime comparison."""

__version__ = "0.1.0"
