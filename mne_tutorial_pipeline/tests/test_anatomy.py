"""Test the coregistration landmarks of the anatomy import."""

from pathlib import Path

import nibabel as nib
import numpy as np

from mne_tutorial_pipeline._config_import import _import_config
from mne_tutorial_pipeline.steps.anatomy._01_import_anatomy import (
    _FIDUCIAL_IDENTS,
    _voxel_to_mri_fiducials,
)

CONFIG_PATH = Path(__file__).parent / "configs" / "config_bst_raw.py"


def test_voxel_fiducials(tmp_path):
    """Test that the tutorial landmarks end up on the right side of the head."""
    # FreeSurfer conformed volume: 256³ 1 mm voxels in LIA order
    affine = np.array(
        [
            [-1.0, 0.0, 0.0, 128.0],
            [0.0, 0.0, 1.0, -128.0],
            [0.0, -1.0, 0.0, 128.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    t1_path = tmp_path / "T1.mgz"
    nib.save(nib.MGHImage(np.zeros((256,) * 3, np.uint8), affine), t1_path)
    config = _import_config(config_path=CONFIG_PATH, check=False, log=False)
    dig = _voxel_to_mri_fiducials(fiducials=config.mri_fiducials, t1_path=t1_path)
    pos = {_FIDUCIAL_IDENTS[d["ident"]]: d["r"] for d in dig}
    assert set(pos) == {"nasion", "lpa", "rpa"}
    np.testing.assert_allclose(pos["nasion"], [0.0, 0.084, -0.004], atol=1e-6)
    # left is negative, right is positive, the ears are behind the nose
    assert pos["lpa"][0] < -0.05
    assert pos["rpa"][0] > 0.05
    for ear in ("lpa", "rpa"):
        assert pos[ear][1] < pos["nasion"][1] - 0.05
        assert abs(pos[ear][2] - pos["nasion"][2]) < 0.02
