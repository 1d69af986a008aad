"""
Utility Functions
=================

This module provides general utility functions used throughout
MarchingMetaballs, including logging configuration and tensor helpers.

Functions
---------
configure_logging
    Set up logging for the MarchingMetaballs package with customizable
    output format and destinations.
as_point_tensor
    Convert array-likes to float tensors of shape (N, 3).
"""

import logging

import numpy as np
import torch

import MarchingMetaballs


def configure_logging(level=logging.INFO, logfile=None):
    """Configure logging for the MarchingMetaballs package.

    Sets up a logger with a standard format and optional file output.
    This is called automatically when MarchingMetaballs is imported.

    Parameters
    ----------
    level : int, default logging.INFO
        Logging level (e.g., logging.DEBUG, logging.INFO, logging.WARNING).
    logfile : str, optional
        Path to log file. If provided, logs are written to both console
        and file. If None, logs only to console.

    Examples
    --------
    >>> from MarchingMetaballs.utils import configure_logging
    >>> import logging
    >>>
    >>> # Print per-frame statistics and keep a copy on disk
    >>> configure_logging(level=logging.DEBUG, logfile='metaballs.log')

    Notes
    -----
    The log format is: "HH:MM:SS message"
    """
    logger = logging.getLogger(MarchingMetaballs.__name__)
    logger.setLevel(level)

    logger_handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s %(message)s", datefmt="%H:%M:%S")
    logger_handler.setFormatter(formatter)
    logger.addHandler(logger_handler)

    if logfile is not None:
        file_logger_handler = logging.FileHandler(logfile)
        file_logger_handler.setFormatter(formatter)
        logger.addHandler(file_logger_handler)


def as_point_tensor(points, dtype=torch.float32, device=None) -> torch.Tensor:
    """Convert a point or a list of points to a tensor of shape (N, 3).

    A single point of shape (3,) becomes a (1, 3) tensor. Tensors keep
    their device unless one is given explicitly.
    """
    if isinstance(points, torch.Tensor):
        points = points.to(dtype=dtype, device=device)
    else:
        points = torch.as_tensor(np.asarray(points), dtype=dtype, device=device)
    if points.ndim == 1:
        points = points.reshape(1, -1)
    return points
