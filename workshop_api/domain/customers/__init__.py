"""Customers domain - Customers and their vehicles"""
