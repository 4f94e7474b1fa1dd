"""
Core algorithms, energies and optimizers.
"""
