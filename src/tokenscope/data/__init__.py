"""Packaged static data (pricing catalog)"""
