from streamui.tree.models import EMPTY_TREE, UITree
from streamui.tree.rfc6902 import PatchOp, apply_patch, apply_patches, parse_patch_line
from streamui.tree.tree_patches import (
    AppendChildren,
    Batch,
    DeleteElements,
    MissingElementError,
    ParentConflictError,
    RemoveChildren,
    ReplaceData,
    ReplaceTree,
    RootElementError,
    SetData,
    SetRoot,
    TreePatchError,
    UpsertElements,
    apply_data_patch,
    apply_tree_patch,
)

__all__ = [
    "EMPTY_TREE",
    "UITree",
    "PatchOp",
    "apply_patch",
    "apply_patches",
    "parse_patch_line",
    "AppendChildren",
    "Batch",
    "DeleteElements",
    "MissingElementError",
    "ParentConflictError",
    "RemoveChildren",
    "ReplaceData",
    "ReplaceTree",
    "RootElementError",
    "SetData",
    "SetRoot",
    "TreePatchError",
    "UpsertElements",
    "apply_data_patch",
    "apply_tree_patch",
]
