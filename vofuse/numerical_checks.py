#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Numerical Validation and Tripwire Module
=========================================

Catches NaN/inf in the fuser's stored poses and dumps diagnostic
information. The checks report only: the fusion path keeps running on
whatever state it has, and callers treat a tripped wire as a signal that
the session needs an external restart.
"""

import numpy as np


def assert_finite(name, M, step=None, extra_info=None, raise_on_fail=False):
    """
    Tripwire: Check matrix/vector for inf/nan and dump diagnostics if found.

    Parameters:
    -----------
    name : str
        Descriptive name of the quantity being checked
    M : np.ndarray
        Matrix or vector to validate
    step : int, optional
        Fusion step counter (for logging context)
    extra_info : dict, optional
        Additional diagnostic information to dump
    raise_on_fail : bool
        If True, raises ValueError on failure. If False, only prints warning.

    Returns:
    --------
    bool : True if finite, False if inf/nan detected
    """
    if M is None:
        print(f"[TRIPWIRE] {name}: is None!")
        return False

    M = np.asarray(M, dtype=float)
    if np.all(np.isfinite(M)):
        return True

    print(f"\n{'='*70}")
    print(f"[TRIPWIRE] NaN/inf DETECTED in {name}")
    print(f"{'='*70}")

    if step is not None:
        print(f"Step: {step}")

    print(f"Values: {M.ravel()}")
    if np.any(np.isnan(M)):
        print(f"NaN locations: {np.argwhere(np.isnan(M)).ravel().tolist()}")
    if np.any(np.isinf(M)):
        print(f"Inf locations: {np.argwhere(np.isinf(M)).ravel().tolist()}")

    if extra_info:
        print(f"\nAdditional context:")
        for key, val in extra_info.items():
            if isinstance(val, np.ndarray):
                print(f"  {key}: {val.ravel()}")
            else:
                print(f"  {key}: {val}")

    print(f"{'='*70}\n")

    if raise_on_fail:
        raise ValueError(f"NaN/inf detected in {name}")

    return False


def check_rotations(rotations, step=None, extra_info=None):
    """
    Run the NaN tripwire over a {name: quaternion} mapping.

    extra_info is dumped with every failing entry.

    Returns the number of quaternions that failed.
    """
    failures = 0
    for name, q in rotations.items():
        if not assert_finite(f"NaN in {name}", q, step=step, extra_info=extra_info):
            failures += 1
    return failures
