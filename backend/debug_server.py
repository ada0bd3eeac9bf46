#!/usr/bin/env python3
"""
Development server with auto-reload. Set breakpoints and attach a debugger.
"""
import sys
import os
from pathlib import Path

# Add the backend directory to the Python path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

os.chdir(backend_dir)

if __name__ == "__main__":
    import uvicorn
    from timegate.core.config import settings

    # Import string format so reload works
    uvicorn.run(
        "timegate.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="debug"
    )
