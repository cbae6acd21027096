#!/usr/bin/env python3

"""
  Kinematic utilities for truth/reco jet matching.

  All methods are pure: objects only need to expose eta, phi and pt.
"""

# General
import math

# Base class
from pyjetresp.process.base import common_base

################################################################
class ProcessUtils(common_base.CommonBase):

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, **kwargs):
    super(ProcessUtils, self).__init__(**kwargs)

  #---------------------------------------------------------------
  # Azimuthal difference phi_a - phi_b, reduced into (-pi, pi]
  #---------------------------------------------------------------
  def delta_phi(self, phi_a, phi_b):

    dphi = math.fmod(phi_a - phi_b, 2*math.pi)
    if dphi > math.pi:
      dphi -= 2*math.pi
    elif dphi <= -math.pi:
      dphi += 2*math.pi
    return dphi

  #---------------------------------------------------------------
  # Compute delta-R (eta-phi) between two objects
  #---------------------------------------------------------------
  def delta_R(self, a, b):

    delta_eta = a.eta - b.eta
    return math.hypot(delta_eta, self.delta_phi(a.phi, b.phi))

  #---------------------------------------------------------------
  # Ratio of reco to truth jet pt.
  # A truth jet with zero pt must be removed by the acceptance
  # before it reaches the matcher.
  #---------------------------------------------------------------
  def qt_ratio(self, reco, truth):

    if truth.pt == 0:
      raise ZeroDivisionError('qt_ratio: truth jet {} has pt = 0'.format(getattr(truth, 'jet_id', '?')))
    return reco.pt / truth.pt

  #---------------------------------------------------------------
  # Exclusive range check: low < value < high (NaN is never in range)
  #---------------------------------------------------------------
  def is_in_range(self, value, value_range):

    low, high = value_range
    return low < value < high
