"""Clinic Attendance package.

Organized by feature modules (appointments, consents, evolutions, timer, ...) with a
thin Flask controller layer over service/repository layers. The shared MySQL store is
the only source of truth between the professional's and the patient's devices.
"""
