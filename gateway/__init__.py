"""Gateway-side event hooks (session lifecycle, agent turns, commands)."""
