"""HTTP surface of the salary engine."""
