"""
slotbooker - Timezone-correct appointment booking on Google Calendar.
"""

__version__ = "0.1.0"
