"""Clinical records application for the Patient360 backend.

This package contains the models, services, serializers, views and route
registrations for patient medications, uploaded medical files and doctor
registration requests.
"""
