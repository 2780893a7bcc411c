"""m1rad: two-moment (M1) radiation transport with implicit matter coupling."""

__version__ = "0.1.0"
