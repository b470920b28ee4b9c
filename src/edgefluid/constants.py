"""Physical constants used by the species components.

All values sourced from ``scipy.constants`` (CODATA 2018).
Import from here instead of defining local constants.
"""

import scipy.constants as _sc

# Masses
m_e = _sc.m_e                 # Electron mass [kg]
m_p = _sc.m_p                 # Proton mass [kg]

# Derived
electron_proton_mass_ratio = m_e / m_p
