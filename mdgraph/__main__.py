from mdgraph.cli import main

main()
