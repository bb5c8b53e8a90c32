from web3scaffold.pipeline import main

main()
