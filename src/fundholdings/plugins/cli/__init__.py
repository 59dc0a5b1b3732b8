"""
Click sub-commands discovered by fundholdings.cli.
"""
