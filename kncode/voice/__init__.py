"""Voice helpers: text-based wake-word matching and text-to-speech."""