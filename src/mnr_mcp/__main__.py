from mnr_mcp.server import main

main()
