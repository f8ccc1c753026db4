"""Quotes domain - Diagnosis, approval and conversion to service orders"""
