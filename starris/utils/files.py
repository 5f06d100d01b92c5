"""
Array file loading shared by the dataset and coupling collaborators.
"""

from pathlib import Path
from typing import Any, Optional

import numpy as np


def load_matrix_file(path: Path, key: Optional[str] = None) -> Any:
    """
    Load one array from a ``.npy``, ``.npz`` or MATLAB ``.mat`` file.

    Args:
        path: File to read.
        key: Variable name inside ``.npz``/``.mat`` archives. If None, the
            first public variable is returned.

    Raises:
        OSError, ValueError, KeyError, NotImplementedError: The file cannot be
            read or holds no matching variable. Callers translate these into
            their own error types.
    """
    path = Path(path)
    if path.suffix == ".mat":
        from scipy.io import loadmat

        return _pick_variable(loadmat(str(path)), key)
    if path.suffix == ".npz":
        with np.load(path) as archive:
            return _pick_variable(dict(archive), key)
    return np.load(path, allow_pickle=False)


def _pick_variable(variables: dict, key: Optional[str]) -> Any:
    if key is not None:
        return variables[key]
    # loadmat adds __header__, __version__ and __globals__
    public = [name for name in variables if not name.startswith("__")]
    if not public:
        raise KeyError("archive holds no variables")
    return variables[public[0]]
