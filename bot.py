#!/usr/bin/env python3
"""
Arcaea Bot - Entry Point

Telegram bot for Arcaea account binding, score images and Link Play rooms.
The actual implementation is in the arcbot package.
"""

if __name__ == "__main__":
    from arcbot import main
    main()
