"""Deduplication plans.

A plan is the auditable artifact of a dry-run: every proposed delete or
merge as a ``pending`` action.  ``execute-plan`` later re-validates and
applies it, recording ``executed`` or ``skipped`` per action.  The
``rejected`` status belongs to human reviewers only.
"""
