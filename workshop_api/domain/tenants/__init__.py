"""Tenants domain - Workshop provisioning and scheduling settings"""
