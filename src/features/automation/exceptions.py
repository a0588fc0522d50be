"""Automation exceptions."""

from fastapi import HTTPException, status


class AutomationRunNotFound(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="Automation run not found")


class NoFieldsToUpdate(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
