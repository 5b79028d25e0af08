"""
ricedebias - Rician bias correction for diffusion MRI

Corrects the upward bias that Rician noise introduces into magnitude
diffusion-weighted signals, voxel by voxel, before model fitting.
"""

__version__ = "0.1.0"
