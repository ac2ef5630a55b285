"""
Dockform test suite.
"""
