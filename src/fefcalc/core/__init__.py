"""
fefcalc core: expression tree IR, formula language, errors and settings.
"""
