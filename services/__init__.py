"""
Eyewear Stylist Services

This package contains service modules for the eyewear stylist application:
- utils: Data URL codec and local image helpers
- image_converter: Upload validation and format normalisation
- gemini_generator: Gemini eyewear image generation
- consultant_chat: Search-grounded consultant chat
- stylist_controller: Application state and actions
- session_manager: Per-browser controller sessions
- views: Comparison slider and conversation view models
"""

__all__ = [
    'utils',
    'image_converter',
    'gemini_generator',
    'consultant_chat',
    'stylist_controller',
    'session_manager',
    'views',
]
