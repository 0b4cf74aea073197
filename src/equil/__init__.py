"""
*EQUIL*

Gravity and capillary equilibrium initialisation of three-phase black-oil reservoirs.
"""

from .constants import *  # noqa
from .config import *  # noqa
from .types import *  # noqa
from .tables import *  # noqa
from .pvt import *  # noqa
from .density import *  # noqa
from .records import *  # noqa
from .miscibility import *  # noqa
from .equilibration import *  # noqa
from .pressures import *  # noqa
from .capillary_pressures import *  # noqa
from .inversion import *  # noqa
from .regions import *  # noqa
from .grids import *  # noqa
from .states import *  # noqa
from .initialize import *  # noqa
