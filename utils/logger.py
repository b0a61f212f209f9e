"""
Logging utilities for the Calendar Intelligence engine
"""
import json
import logging
import sys
from datetime import datetime
from typing import Optional

class CalendarIntelligenceLogger:
    """Root logging setup and structured run summaries"""
    
    @staticmethod
    def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
        """Setup logging configuration"""
        
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
        
        # Clear existing handlers
        root_logger.handlers.clear()
        
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)
        
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        
        # Suppress noisy client libraries
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('googleapiclient').setLevel(logging.WARNING)
        logging.getLogger('google.auth').setLevel(logging.WARNING)
        
        return root_logger
    
    @staticmethod
    def log_operation_summary(operation: str, identity: str, result_summary: dict,
                              processing_time: float):
        """Log one engine operation as a JSON summary line"""
        logger = logging.getLogger(__name__)
        
        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "operation": operation,
            "identity": identity,
            "processing_time_seconds": round(processing_time, 3),
            "result_summary": result_summary
        }
        
        logger.info(f"Operation processed: {json.dumps(log_entry, default=str)}")
