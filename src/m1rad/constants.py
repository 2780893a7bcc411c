"""Physical constants for dimensional runs.

All values sourced from ``scipy.constants`` (CODATA 2018). The solver core
never imports these directly: every constant reaches it through
:class:`m1rad.config.ConstantsConfig`, so dimensionless problems can set
``c = a_rad = 1``.
"""

import scipy.constants as _sc

c = _sc.c                     # Speed of light [m/s]
k_B = _sc.k                   # Boltzmann constant [J/K]
sigma_SB = _sc.Stefan_Boltzmann  # Stefan-Boltzmann constant [W/m^2/K^4]
m_p = _sc.m_p                 # Proton mass [kg]
m_u = _sc.physical_constants["atomic mass constant"][0]  # [kg]

# Derived
a_rad = 4.0 * sigma_SB / c    # Radiation constant [J/m^3/K^4]
