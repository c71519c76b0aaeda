"""Clinic application: hospitals, staff, patients, appointments and prescriptions.

Authorization for every endpoint goes through :mod:`clinic.services.policy`.
"""
