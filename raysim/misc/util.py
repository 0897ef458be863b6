#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""util.py: Module containing logging, data export and plotting helpers used
           across the RayCTSim modules."""
# ------------------------------------------------------------------------------

import os, sys, logging
from numpy import *
import matplotlib.pyplot as plt

from raysim import *


def get_logger(lname, logfile=None):
    """
    ---------------------------------------------------------------------------
    Function to create a python logger for a given class. Messages are
    printed on the terminal and, if a log file is given, appended to it.
    Calling the function again for the same logger name does not stack
    additional handlers.

    :param lname:       name for logger - printed on terminal
    :param logfile:     log file path (optional)
    :return:
    ---------------------------------------------------------------------------
    """

    # Create logger object
    logger = logging.getLogger(lname)
    logger.setLevel(logging.INFO)

    # Create formatter
    formatter = logging.Formatter(
                        '[%(asctime)s] [%(name)s] %(levelname)s: %(message)s')

    handler_types = [type(h) for h in logger.handlers]

    if logging.StreamHandler not in handler_types:
        s_handler = logging.StreamHandler(sys.stdout)
        s_handler.setFormatter(formatter)
        logger.addHandler(s_handler)

    if logfile is not None:
        logfile = os.path.abspath(logfile)
        f_names = [h.baseFilename for h in logger.handlers
                   if isinstance(h, logging.FileHandler)]

        if logfile not in f_names:
            f_handler = logging.FileHandler(logfile, mode='a')
            f_handler.setFormatter(formatter)
            logger.addHandler(f_handler)

    logger.propagate = False

    return logger
# -----------------------------------------------------------------------------


def save_flat_data(file_path, data, fmt='%.8g'):
    """
    ---------------------------------------------------------------------------
    Save an array as a flat text dump with one value per line. Multi-
    dimensional arrays are written in row-major order, i.e., (view, row,
    channel) for projection data and (row, column) for images.

    :param file_path:   output file path
    :param data:        array to be saved
    :param fmt:         number format for each line
    :return: file path
    ---------------------------------------------------------------------------
    """

    out_dir = os.path.dirname(os.path.abspath(file_path))
    os.makedirs(out_dir, exist_ok=True)

    savetxt(file_path, asarray(data).ravel(order='C'), fmt=fmt)
    return file_path
# -----------------------------------------------------------------------------


def load_flat_data(file_path, shape=None, dtype=float64):
    """
    ---------------------------------------------------------------------------
    Load a flat text dump written by save_flat_data()

    :param file_path:   input file path
    :param shape:       shape to restore (row-major), optional
    :param dtype:       output data type
    :return:  numpy ndarray
    ---------------------------------------------------------------------------
    """

    data = atleast_1d(loadtxt(file_path, dtype=dtype))

    if shape is not None:
        data = data.reshape(shape)

    return data
# -----------------------------------------------------------------------------


def quick_imshow(nrows, ncols=1,
                 images=None,
                 titles=None,
                 colorbar=True,
                 vmax=None,
                 vmin=None,
                 figsize=None,
                 figtitle=None,
                 visibleaxis=False,
                 colormap='gray',
                 saveas=''):
    """-------------------------------------------------------------------------
    Convenience function that make subplots of imshow

    :param  nrows - number of rows
    :param  ncols - number of cols
    :param  images - list of images
    :param  titles - list of titles
    :param  vmax - maximum display value, shared by all subplots
    :param  vmin - minimum display value, shared by all subplots

    :return: f - the figure handle
             axes - axes or array of axes objects
             caxes - tuple of axes image
    -------------------------------------------------------------------------"""

    if isinstance(nrows, ndarray):
        images = [nrows]
        nrows = 1
        ncols = 1

    if figsize is None:
        s = 3.5
        if figtitle:
            figsize = (s * ncols, s * nrows + 0.5)
        else:
            figsize = (s * ncols, s * nrows)

    f, axes = plt.subplots(nrows, ncols, figsize=figsize, squeeze=False)
    caxes = []

    for i, (ax, img) in enumerate(zip(axes.flat, images)):
        cax = ax.imshow(img, cmap=colormap, vmax=vmax, vmin=vmin)
        if titles is not None:
            ax.set_title(titles[i])
        if colorbar:
            f.colorbar(cax, ax=ax)
        cax.axes.get_xaxis().set_visible(visibleaxis)
        cax.axes.get_yaxis().set_visible(visibleaxis)
        caxes.append(cax)

    if figtitle is not None:
        f.suptitle(figtitle)
    if saveas != '':
        f.savefig(saveas)

    return f, axes, tuple(caxes)
# ------------------------------------------------------------------------------
