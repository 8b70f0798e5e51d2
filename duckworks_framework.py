"""
DuckWorks Framework - Educational Automation That Just Works!
===========================================================

Shared branding and configuration locations for DuckWorks tools.
DuckStage stages Canvas programming submissions for hands-on grading.

Author: DuckWorks Development Team
License: Educational Use
Version: 1.1.0
"""

import os


class DuckWorksInfo:
    """Information and branding for the DuckWorks suite"""

    SUITE_NAME = "DuckWorks"
    SUITE_TAGLINE = "Educational Automation That Just Works!"
    VERSION = "1.1.0"

    TOOLS = {
        "DuckStage": {
            "name": "DuckStage",
            "description": "Portioned, resumable staging of Canvas code submissions",
            "version": "1.0.0",
            "icon": "🦆",
            "status": "Active"
        }
    }

    @classmethod
    def get_welcome_banner(cls, tool_name=None):
        """Get a formatted welcome banner for any DuckWorks tool"""
        banner = f"""
🦆 {cls.SUITE_NAME} - {cls.SUITE_TAGLINE}
{'=' * 60}"""

        if tool_name and tool_name in cls.TOOLS:
            tool_info = cls.TOOLS[tool_name]
            banner += f"""
Currently running: {tool_info['name']} v{tool_info['version']}
{tool_info['description']}
"""

        return banner


class DuckWorksConfig:
    """Shared configuration locations for DuckWorks tools"""

    def __init__(self, tool_name, base_dir=None):
        self.tool_name = tool_name
        if base_dir is None:
            base_dir = os.path.join(os.path.expanduser("~"), ".duckworks")
        self.config_dir = base_dir
        self.tool_config_dir = os.path.join(self.config_dir, tool_name.lower())

        # Ensure config directories exist
        os.makedirs(self.tool_config_dir, exist_ok=True)

    def get_config_path(self, filename):
        """Get full path for a config file"""
        return os.path.join(self.tool_config_dir, filename)


def print_duckworks_header(tool_name=None):
    """Print a standardized header for any DuckWorks tool"""
    print(DuckWorksInfo.get_welcome_banner(tool_name))
