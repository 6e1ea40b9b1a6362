"""
uxlaunch: launch and lifecycle control for an AirPlay-style mirroring service
Config validation, service orchestration and idle-relaunch supervision
"""

__version__ = "1.38.0"
__author__ = "uxlaunch contributors"
