# Default settings for data processing and analysis.

from typing import Literal, Optional, Sequence, Union

from mne_tutorial_pipeline.typing import FiducialsT, PathLike

###############################################################################
# Dataset
# -------

study_name: str = "TutorialRaw"
"""
Name of the study (the protocol). It is used to name the derivatives folder
and the processing log.

???+ example "Example"
    ```python
    study_name = "TutorialRaw"
    ```
"""

tutorial_dir: Optional[PathLike] = None
"""
Folder that contains the unpacked tutorial dataset. Pass `None` to use the
value of the `TUTORIAL_DIR` environment variable instead. Raises an exception
if neither has been specified.

???+ example "Example"
    ```python
    tutorial_dir = "~/mne_data/MNE-brainstorm-data/bst_raw"
    ```
"""

raw_fname: PathLike = "MEG/bst_raw/subj001_somatosensory_20111109_01_AUX-f.ds"
"""
Location of the continuous recording, relative to
[`tutorial_dir`][mne_tutorial_pipeline._config.tutorial_dir].
CTF `.ds` folders and any other format supported by `mne.io.read_raw` can
be used.
"""

subjects_dir: Optional[PathLike] = None
"""
Path to the directory that contains the FreeSurfer reconstruction of the
subject. If `None`, this will default to `subjects` inside of
[`tutorial_dir`][mne_tutorial_pipeline._config.tutorial_dir].
"""

subject: str = "bst_raw"
"""
Name of the FreeSurfer subject, which is also used to name the output files.
"""

deriv_root: Optional[PathLike] = None
"""
The root of the derivatives directory in which the pipeline will store
the processing results. If `None`, this will be
`derivatives/<study_name>` inside the tutorial directory.
"""

recreate_derivatives: bool = False
"""
Whether to delete all previous results before processing, starting from an
empty derivatives directory.
"""

interactive: bool = False
"""
If True, the steps will provide some interactive elements: the user may be
asked where to find the external toolbox, figures are shown, and the final
report is opened in a web browser.
"""

###############################################################################
# External toolbox
# ----------------

toolbox_name: Optional[str] = None
"""
Display name of an external toolbox that needs to be initialized before
processing, e.g. `"FieldTrip"`. If `None`, no external toolbox is needed.
"""

toolbox_entry_point: Optional[str] = None
"""
Dotted name of the module that initializes the external toolbox when
imported. It is looked up on the module search path, extended with the
toolbox installation folder if necessary.

???+ example "Example"
    ```python
    toolbox_name = "FieldTrip"
    toolbox_entry_point = "fieldtrip.defaults"
    toolbox_bootstrap = "ft_defaults"
    ```
"""

toolbox_bootstrap: Optional[str] = None
"""
Name of a function in the entry point module that needs to be called once
after importing it. If `None`, the import itself initializes the toolbox.
"""

toolbox_marker: Optional[str] = None
"""
File that identifies a valid installation folder, relative to that folder.
Defaults to the source file of the entry point module.
"""

toolbox_url: Optional[str] = None
"""
Download location of the toolbox, shown to the user when asked where it is
installed.
"""

###############################################################################
# Anatomy
# -------

spacing: Union[Literal["oct5", "oct6", "ico4", "ico5", "all"], int] = "oct6"
"""
The source space spacing. Can be `'ico#'` for a recursively subdivided
icosahedron, `'oct#'` for a recursively subdivided octahedron,
`'all'` for all points, or an integer to use approximate
distance-based spacing (in mm).
"""

mindist: float = 5.0
"""
Exclude source points closer than this distance (mm) to the inner skull
surface.
"""

mri_fiducials: Union[Literal["auto", "estimated"], FiducialsT] = "auto"
"""
Anatomical landmarks of the MRI, used to coregister it with the MEG head
coordinate frame.

- `"auto"` reads `bem/<subject>-fiducials.fif` from the subject directory,
  falling back to `"estimated"` if it does not exist.
- `"estimated"` morphs the fsaverage landmarks to the subject.
- A dictionary gives the voxel indices of the nasion and the preauricular
  points in `mri/T1.mgz`, in the LIA order of FreeSurfer's conformed volume.
  Landmarks picked in Brainstorm are in its MRI coordinates instead
  (millimeters toward right, anterior and superior). For a 256³ volume with
  1 mm voxels, `[x, y, z]` there is `[255 - x, 255 - z, y]` here.

???+ example "Example"
    ```python
    mri_fiducials = dict(
        nasion=[128, 132, 212],
        lpa=[200, 136, 124],
        rpa=[55, 141, 129],
    )
    ```
"""

mri_trans: Optional[PathLike] = None
"""
A ready-made head ↔ MRI transformation file. If given, the coregistration
from [`mri_fiducials`][mne_tutorial_pipeline._config.mri_fiducials] is
skipped.
"""

###############################################################################
# Channels
# --------

ch_types: Sequence[Literal["meg", "mag", "grad", "eeg"]] = ["meg"]
"""
The channel types to analyze.
"""

ecg_channel: Optional[str] = "EEG057"
"""
Channel that records the electrocardiogram. If `None`, heartbeats are not
detected.
"""

eog_channel: Optional[str] = "EEG058"
"""
Channel that records the vertical electrooculogram. If `None`, eye blinks are
not detected and no SSP projectors are computed.
"""

###############################################################################
# Frequency filtering
# -------------------

notch_freqs: Optional[Sequence[float]] = [60.0, 120.0, 180.0]
"""
Frequencies of the power line noise to remove from the MEG channels with a
notch filter. Pass `None` to skip this step.
"""

notch_trans_bandwidth: float = 1.0
"""
Width of the transition band of the notch filter, in Hz.
"""

notch_widths: Optional[float] = None
"""
Width of the stop band, in Hz. If `None`, `freq / 200` is used for each
frequency.
"""

psd_tmin: float = 0.0
"""
Start of the segment used to estimate the power spectrum density, in
seconds.
"""

psd_tmax: Optional[float] = 50.0
"""
End of the segment used to estimate the power spectrum density, in seconds.
If `None`, the entire recording is used.
"""

psd_window: float = 4.0
"""
Length of the Welch windows, in seconds. Consecutive windows overlap by
[`psd_overlap`][mne_tutorial_pipeline._config.psd_overlap].
"""

psd_overlap: float = 0.5
"""
Fraction of overlap between consecutive Welch windows.
"""

###############################################################################
# Artifact detection
# ------------------

ecg_event_name: str = "cardiac"
"""
Name of the annotations marking detected heartbeats.
"""

eog_event_name: str = "blink"
"""
Name of the annotations marking detected eye blinks.
"""

remove_simultaneous_dt: Optional[float] = 0.25
"""
Heartbeats that occur within this many seconds of an eye blink are
discarded, so that the blink projectors are not contaminated by the cardiac
artifact. Pass `None` to keep all heartbeats.
"""

###############################################################################
# SSP
# ---

spatial_filter: Optional[Literal["ssp"]] = "ssp"
"""
Whether to compute and apply signal-space projectors (SSP) that remove the
eye blink artifact. Pass `None` to skip this step.
"""

n_proj_eog: dict[str, float] = dict(n_mag=1, n_grad=1, n_eeg=0)
"""
Number of SSP vectors to keep per channel type. The first components are
always selected.
"""

min_eog_epochs: int = 5
"""
Minimal number of eye blinks needed to compute projectors.
"""

ssp_eog_tmin: float = -0.2
"""
Start of the blink epochs used to compute projectors, in seconds.
"""

ssp_eog_tmax: float = 0.2
"""
End of the blink epochs used to compute projectors, in seconds.
"""

ssp_eog_l_freq: Optional[float] = 1.5
"""
High-pass cutoff applied before computing the blink projectors, in Hz.
"""

ssp_eog_h_freq: Optional[float] = 15.0
"""
Low-pass cutoff applied before computing the blink projectors, in Hz.
"""

ssp_reject_eog: Optional[dict[str, float]] = None
"""
Peak-to-peak rejection thresholds applied to the blink epochs.

???+ example "Example"
    ```python
    ssp_reject_eog = dict(mag=4000e-15)
    ```
"""

###############################################################################
# Epoching
# --------

conditions: Sequence[str] = ["left", "right"]
"""
The conditions to epoch. Events are read from the annotations of the
recording by name, unless
[`stim_channel`][mne_tutorial_pipeline._config.stim_channel] is set.
"""

stim_channel: Optional[str] = None
"""
Read events from this stimulus channel instead of the annotations. Requires
[`event_id`][mne_tutorial_pipeline._config.event_id].
"""

event_id: Optional[dict[str, int]] = None
"""
Mapping of condition names to the event codes found on
[`stim_channel`][mne_tutorial_pipeline._config.stim_channel].

???+ example "Example"
    ```python
    stim_channel = "UPPT001"
    event_id = dict(left=1, right=2)
    ```
"""

epochs_tmin: float = -0.1
"""
The beginning of an epoch, relative to the respective event, in seconds.
"""

epochs_tmax: float = 0.3
"""
The end of an epoch, relative to the respective event, in seconds.
"""

baseline: Optional[tuple[Optional[float], Optional[float]]] = (-0.1, 0.0)
"""
Specifies which time interval to use for baseline correction of epochs;
if `None`, no baseline correction is applied.
"""

time_offset: float = -0.0042
"""
Shift of the time axis applied to the epochs after baseline correction, in
seconds, to compensate for the delay between the trigger and the actual
stimulation.
"""

reject: Optional[dict[str, float]] = None
"""
Peak-to-peak amplitude limits to mark epochs as bad.

???+ example "Example"
    ```python
    reject = dict(mag=4000e-15)
    ```
"""

###############################################################################
# Covariance
# ----------

noise_cov: tuple[Optional[float], Optional[float]] = (-0.104, -0.005)
"""
Time window `(tmin, tmax)` of the epochs used to estimate the noise
covariance, in seconds of the shifted time axis.
"""

noise_cov_method: Literal["empirical", "shrunk", "auto"] = "empirical"
"""
The covariance estimator.
"""

###############################################################################
# Source estimation
# -----------------

run_source_estimation: bool = True
"""
Whether to run source estimation.
"""

head_model: Literal["sphere", "bem"] = "sphere"
"""
The head model. `"sphere"` fits a single sphere to the head shape
digitization, `"bem"` computes a single-layer boundary element model from
the FreeSurfer surfaces.
"""

bem_ico: int = 4
"""
Downsampling of the BEM surfaces, used when `head_model="bem"`.
"""

inverse_method: Literal["MNE", "dSPM", "sLORETA", "eLORETA"] = "dSPM"
"""
Use minimum norm, dSPM (default), sLORETA, or eLORETA to calculate the
inverse solution.
"""

snr: float = 3.0
"""
Signal-to-noise ratio of the evoked responses, used to derive the
regularization of the inverse operator.
"""

fixed_orientation: bool = True
"""
Whether to constrain the sources to be normal to the cortical surface.
"""

loose: Union[float, Literal["auto"]] = 0.2
"""
Weight of the tangential source components when
[`fixed_orientation`][mne_tutorial_pipeline._config.fixed_orientation] is
False.
"""

depth: Optional[float] = 0.5
"""
Depth weighting exponent. `None` is equivalent to 0, meaning no depth
weighting is performed.
"""

report_stc_n_time_points: Optional[int] = None
"""
Number of time points to display for each source estimate in the report.
"""

###############################################################################
# Execution
# ---------

n_jobs: int = 1
"""
Number of jobs used by the MNE-Python functions that support parallel
processing.
"""

log_level: Literal["info", "error"] = "info"
"""
Set the pipeline logging verbosity.
"""

mne_log_level: Literal["info", "error"] = "error"
"""
Set the MNE-Python logging verbosity.
"""

on_error: Literal["continue", "abort", "debug"] = "abort"
"""
Whether to abort processing as soon as an error occurs, continue with all other
processing steps for as long as possible, or drop you into a debugger in case
of an error.
"""

memory_location: Optional[Union[PathLike, bool]] = True
"""
If not None (or False), caching will be enabled and the cache files will be
stored in the given directory. The default (True) will use a
`"joblib"` subdirectory in the derivatives directory.
"""

memory_file_method: Literal["mtime", "hash"] = "mtime"
"""
The method to use for cache invalidation (i.e., detecting changes). Using the
"modified time" reported by the filesystem (`"mtime"`, default) is very fast
but requires that the filesystem supports proper mtime reporting. Using file
hashes (`"hash"`) is slower and requires reading all input files but should
work on any filesystem.
"""

memory_verbose: int = 0
"""
The verbosity to use when using memory. The default (0) does not print, while
1 will print the function calls that will be cached.
"""

config_validation: Literal["raise", "warn", "ignore"] = "raise"
"""
How strictly to validate the configuration. Errors are always raised for
invalid entries. This setting controls how to handle *possibly* or *likely*
incorrect entries, such as likely misspellings (e.g., providing `condition`
instead of `conditions`) or option names from Brainstorm scripts.
"""
