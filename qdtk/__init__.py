"""
qdtk - Qdrant ToolKit
Navigate, dump and search data from Qdrant vector databases
"""

__version__ = "1.0.0"
