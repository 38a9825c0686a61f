"""
vipomdp: value iteration for partially observable Markov decision processes.
"""

__version__ = "0.1.0"
