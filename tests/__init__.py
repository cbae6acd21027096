# coding: utf-8
# flake8: noqa

"""
Entry point for all tests.
"""

__all__ = []

# import all tests
from .test_process_utils import *
from .test_acceptance import *
from .test_jet_matcher import *
from .test_match_record import *
from .test_treewriter import *
from .test_messages import *
from .test_process_io import *
from .test_process_response import *
