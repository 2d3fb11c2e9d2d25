"""Services Layer — data-access collaborators and the barcode scan workflow.

Invariants:
    - Services reach storage only through the RecordStore protocol
    - Cipher calls happen in pet_records.py only

Design Decisions:
    - One service per aggregate (medicines, pets) plus the per-session scan workflow
"""
