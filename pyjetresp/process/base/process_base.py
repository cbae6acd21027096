#!/usr/bin/env python3

"""
  Response-matching task base class: output directory and config file handling.
"""

# General
import os
import sys

# Configuration
import yaml

# Analysis utilities
from pyjetresp.process.base import common_base

################################################################
class ConfigError(Exception):
  pass

################################################################
class ProcessBase(common_base.CommonBase):

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, input_file_truth='', input_file_reco='', config_file='', output_dir='', debug_level=0, **kwargs):
    super(ProcessBase, self).__init__(**kwargs)
    self.input_file_truth = input_file_truth
    self.input_file_reco = input_file_reco
    self.config_file = config_file
    self.output_dir = output_dir
    self.debug_level = debug_level # (0 = no debug info, 1 = some debug info, 2-3 = all debug info)

    # Create output dir
    if not self.output_dir.endswith("/"):
      self.output_dir = self.output_dir + "/"
    if not os.path.exists(self.output_dir):
      os.makedirs(self.output_dir)

  #---------------------------------------------------------------
  # Read config file into a dict
  #---------------------------------------------------------------
  def load_config(self):

    try:
      with open(self.config_file, 'r') as stream:
        config = yaml.safe_load(stream)
    except (OSError, yaml.YAMLError) as e:
      raise ConfigError('cannot read config file {}: {}'.format(self.config_file, e)) from e

    if config is None:
      config = {}
    if not isinstance(config, dict):
      raise ConfigError('config file {} must contain a mapping, got {}'.format(self.config_file, type(config).__name__))
    return config

  #---------------------------------------------------------------
  # Initialize config file into class members
  #---------------------------------------------------------------
  def initialize_config(self):

    config = self.load_config()

    if 'event_number_max' in config:
      self.event_number_max = config['event_number_max']
    else:
      self.event_number_max = sys.maxsize

    # the command line value is kept if it is larger
    if 'debug_level' in config:
      self.debug_level = max(self.debug_level, config['debug_level'])

    return config
