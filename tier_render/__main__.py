from tier_render.cli import run

run()
