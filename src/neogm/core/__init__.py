# src/neogm/core/__init__.py
"""
neogm Core Module

Driver-neutral result types and the node tree that turns flat result rows
into a deduplicated forest.
"""

from neogm.core.raw import RawNode, RawRecord
from neogm.core.tree_node import TreeNode
from neogm.core.node_tree import ColumnLink, NodeTree

__all__ = [
    "RawNode",
    "RawRecord",
    "TreeNode",
    "ColumnLink",
    "NodeTree",
]
