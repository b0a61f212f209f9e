"""
Validation utilities for the Calendar Intelligence engine
"""
import re
from datetime import datetime
from typing import List, Optional

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

class RequestValidator:
    """Validator for values handed to the engine by callers"""
    
    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format"""
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return bool(re.match(email_pattern, email))
    
    @staticmethod
    def validate_time_of_day(value: str) -> bool:
        """Validate an HH:MM wall-clock time"""
        if not re.match(r'^\d{2}:\d{2}$', value):
            return False
        try:
            datetime.strptime(value, "%H:%M")
            return True
        except ValueError:
            return False
    
    @staticmethod
    def validate_weekday(day: str) -> bool:
        """Validate a weekday name such as 'Monday'"""
        return day in WEEKDAY_NAMES
    
    @staticmethod
    def validate_time_range(start: str, end: str) -> List[str]:
        """Validate an HH:MM range and return list of errors"""
        errors = []
        
        for label, value in (("start", start), ("end", end)):
            if not RequestValidator.validate_time_of_day(value):
                errors.append(f"Invalid {label} time: {value}. Expected: HH:MM")
        
        if not errors and start >= end:
            errors.append(f"Time range start {start} must be before end {end}")
        
        return errors
    
    @staticmethod
    def validate_interval(start: datetime, end: datetime) -> Optional[str]:
        """Validate an event interval, returning an error message or None"""
        if (start.tzinfo is None) != (end.tzinfo is None):
            return "Event start and end must both be timezone-aware or both naive"
        if end < start:
            return f"Event end {end.isoformat()} precedes start {start.isoformat()}"
        return None

class DataSanitizer:
    """Sanitize and clean input data"""
    
    @staticmethod
    def sanitize_email(email: str) -> str:
        """Sanitize email address"""
        return email.strip().lower()
    
    @staticmethod
    def sanitize_text(text: str) -> str:
        """Collapse excessive whitespace in titles and descriptions"""
        return re.sub(r'\s+', ' ', text.strip())
    
    @staticmethod
    def sanitize_weekday(day: str) -> str:
        """Normalise weekday capitalisation ('monday' -> 'Monday')"""
        return day.strip().capitalize()
