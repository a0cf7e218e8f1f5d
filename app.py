"""
Hosted entry point for latentnav.

Launches the Gradio navigator configured entirely from the environment.

Environment variables:
    LATENTNAV_CONFIG: Optional JSON config file
    LATENTNAV_SERVER_URL: Generation server root URL
    LATENTNAV_USE_MOCK: Use the offline mock service (1/true/yes)
    LATENTNAV_COMPOSITION_MODE: 'direct' or 'base_delta'
    PORT: Server port (default: 7860)
"""

import os


def main():
    """Main entry point."""
    from latentnav.config import load_config
    from latentnav.visualization.app import launch
    from latentnav.visualization.navigator import Navigator

    config = load_config(os.environ.get("LATENTNAV_CONFIG") or None)

    print("=" * 50)
    print("latentnav - Latent Space Navigator")
    print("=" * 50)
    print(f"Server: {'mock' if config.use_mock else config.server_url}")
    print(f"Mode: {config.composition_mode}")
    print(f"Latent dim: {config.latent_dim}, grid {config.grid_size}x{config.grid_size}")
    print("=" * 50)

    print("Launching...")
    launch(Navigator(config), port=int(os.environ.get("PORT", "7860")), share=False)


if __name__ == "__main__":
    main()
