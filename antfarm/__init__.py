"""
Antfarm.

Runs a small fleet of blockchain node processes ("ants") for integration
testing:
- starts, stops and upgrades node processes
- wires their peer connections into test topologies
- runs long-lived background jobs against each node
- detects when the fleet has split into divergent consensus groups
"""
