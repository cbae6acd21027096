#!/usr/bin/env python3

"""
  Jet and constituent acceptance used by the matcher.

  The matcher only calls is_good_jet() / is_good_cst(); the cuts themselves
  come from the 'acceptance' block of the config file, e.g.

    acceptance:
      jet_pt: [5., 100.]
      jet_eta: [-1.1, 1.1]
      cst_z: [0.01, 1.]

  Ranges are inclusive, a missing key means no cut.
"""

# Base class
from pyjetresp.process.base import common_base

################################################################
class AcceptanceFilter(common_base.CommonBase):

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, **kwargs):
    super(AcceptanceFilter, self).__init__(**kwargs)

  #---------------------------------------------------------------
  # Jets with pt <= 0 can never be scored (qt ratio)
  #---------------------------------------------------------------
  def is_good_jet(self, jet):
    return jet.pt > 0

  #---------------------------------------------------------------
  def is_good_cst(self, cst):
    return True

################################################################
class KinematicAcceptance(AcceptanceFilter):

  jet_keys = {'jet_pt': 'pt', 'jet_eta': 'eta', 'jet_ncst': 'num_cst'}
  cst_keys = {'cst_ene': 'ene', 'cst_eta': 'eta', 'cst_z': 'z', 'cst_dr': 'dr'}

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, config=None, **kwargs):
    super(KinematicAcceptance, self).__init__(**kwargs)
    if config is None:
      config = {}

    unknown = [key for key in config if key not in self.jet_keys and key not in self.cst_keys]
    if unknown:
      raise ValueError('acceptance: unknown cut(s) {}'.format(unknown))

    self.jet_cuts = []
    self.cst_cuts = []
    for key, value in config.items():
      low, high = self.parse_range(key, value)
      if key in self.jet_keys:
        self.jet_cuts.append((self.jet_keys[key], low, high))
      else:
        self.cst_cuts.append((self.cst_keys[key], low, high))

  #---------------------------------------------------------------
  # Check that a cut is given as [low, high] with low <= high
  #---------------------------------------------------------------
  def parse_range(self, key, value):
    try:
      low, high = [float(x) for x in value]
    except (TypeError, ValueError):
      raise ValueError('acceptance: {} must be a pair [low, high], got {}'.format(key, value))
    if not low <= high:
      raise ValueError('acceptance: {} has low > high ({})'.format(key, value))
    return low, high

  #---------------------------------------------------------------
  def passes(self, obj, cuts):
    for attr, low, high in cuts:
      if not low <= getattr(obj, attr) <= high:
        return False
    return True

  #---------------------------------------------------------------
  def is_good_jet(self, jet):
    if not super(KinematicAcceptance, self).is_good_jet(jet):
      return False
    return self.passes(jet, self.jet_cuts)

  #---------------------------------------------------------------
  def is_good_cst(self, cst):
    return self.passes(cst, self.cst_cuts)

#---------------------------------------------------------------
# Build the acceptance from the config block (None: default filter)
#---------------------------------------------------------------
def get_acceptance(config=None):

  if not config:
    return AcceptanceFilter()
  return KinematicAcceptance(config=config)
