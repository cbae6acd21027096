from .mputils import *
from .treewriter import *
from .treereader import *
