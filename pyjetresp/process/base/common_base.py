#!/usr/bin/env python3

"""
  Base class for response-matching objects: members are set from kwargs.
"""

################################################################
class CommonBase(object):

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, **kwargs):
    for key, value in kwargs.items():
      setattr(self, key, value)

  #---------------------------------------------------------------
  # Return list of class members, one per line
  #---------------------------------------------------------------
  def __str__(self):
    s = []
    variables = self.__dict__.keys()
    for v in variables:
      s.append('{} = {}'.format(v, self.__dict__[v]))
    return "[i] {} with \n .  {}".format(self.__class__.__name__, '\n .  '.join(s))
