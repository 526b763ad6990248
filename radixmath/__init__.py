#
# Radix-generic arbitrary-precision arithmetic
#

from .context import *
from .errors import *
from .accumulator import *
from .helper import *
from .convergence import *
from .radixmath import *
from .trappable import *

from . import context, errors, accumulator, helper, convergence, radixmath, trappable


__all__ = (context.__all__ + errors.__all__ + accumulator.__all__ + helper.__all__
           + convergence.__all__ + radixmath.__all__ + trappable.__all__)
