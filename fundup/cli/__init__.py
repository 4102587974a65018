"""
FundUp command-line tools.
"""
