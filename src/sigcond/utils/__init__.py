"""Numerical kernels, filter design and input validation"""
