from colornet.bitmask import PatientBitmask
from colornet.config import (SearchConfig, MODE_ILP, MODE_EXACT, MODE_COLORFUL, MODE_BACKGROUND_EXCLUSIVE,
                             MODE_ALMOST)
from colornet.enumerator import SubnetworkEnumerator, color_support
from colornet.load_data import data_preprocessing, MutationContext
from colornet.subnetworks import ColoredNode, ColoredNodeSet, SubnetworkIndex

__version__ = "1.0.0"
