from nfc_nft.cli.main import main

main()
